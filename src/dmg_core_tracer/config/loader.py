import yaml
from pathlib import Path
from typing import Dict, Any, Optional, Union

from dmg_core_tracer.core.errors import InvalidParameterError, LoadError
from .models import SystemConfig, CpuInitialState

# @intent:constant initial_state.registersで指定できるレジスタ名。
REGISTER_NAMES = frozenset(["a", "f", "b", "c", "d", "e", "h", "l", "af", "bc", "de", "hl"])

class ConfigLoader:
    def load_from_file(self, path: Union[str, Path]) -> SystemConfig:
        try:
            with open(path, 'r', encoding="utf-8") as f:
                data = yaml.safe_load(f)
        except OSError as e:
            raise LoadError(f"Could not read config file '{path}': {e}") from e
        except yaml.YAMLError as e:
            raise InvalidParameterError(f"Invalid YAML in config file '{path}': {e}") from e
        config = self._parse_config(data or {})
        # ファイルパスは設定ファイルのディレクトリからの相対パスとして解決する
        base_dir = Path(path).parent
        config.rom = self._resolve(base_dir, config.rom)
        config.symbols = self._resolve(base_dir, config.symbols)
        return config

    def _parse_config(self, data: Dict[str, Any]) -> SystemConfig:
        if not isinstance(data, dict):
            raise InvalidParameterError("Config root must be a mapping.")

        # Parse Initial State
        initial_state_data = data.get("initial_state") or {}
        registers = {}
        for reg_name, value in (initial_state_data.get("registers") or {}).items():
            name = str(reg_name).lower()
            if name not in REGISTER_NAMES:
                raise InvalidParameterError(f"Unknown register in initial_state: {reg_name}")
            registers[name] = self._parse_int(value)

        initial_state = CpuInitialState(
            pc=self._parse_optional_int(initial_state_data.get("pc")),
            sp=self._parse_optional_int(initial_state_data.get("sp")),
            registers=registers
        )

        # Parse I/O register overrides
        io_registers = {}
        for address, value in (data.get("io_registers") or {}).items():
            io_registers[self._parse_int(address)] = self._parse_int(value)

        return SystemConfig(
            rom=data.get("rom"),
            symbols=data.get("symbols"),
            initial_state=initial_state,
            io_registers=io_registers
        )

    @staticmethod
    def _resolve(base_dir: Path, value: Optional[str]) -> Optional[str]:
        if value is None:
            return None
        path = Path(value)
        return str(path if path.is_absolute() else base_dir / path)

    def _parse_optional_int(self, value: Any) -> Optional[int]:
        if value is None:
            return None
        return self._parse_int(value)

    def _parse_int(self, value: Any) -> int:
        if isinstance(value, bool):
            raise InvalidParameterError(f"Invalid integer format: {value}")
        if isinstance(value, int):
            return value
        if isinstance(value, str):
            text = value.strip()
            try:
                if text.lower().startswith("0x"):
                    return int(text, 16)
                if text.startswith("$"):
                    return int(text[1:], 16)
                return int(text)
            except ValueError as e:
                raise InvalidParameterError(f"Invalid integer format: {value}") from e
        raise InvalidParameterError(f"Invalid integer format: {value}")
