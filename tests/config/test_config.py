# tests/config/test_config.py
"""
dmg_core_tracer.configパッケージの単体テスト。
YAML設定ファイルの解析と、設定からのマシン構築を検証します。
"""
import pytest

from dmg_core_tracer.config.builder import SystemBuilder
from dmg_core_tracer.config.loader import ConfigLoader
from dmg_core_tracer.config.models import SystemConfig, CpuInitialState
from dmg_core_tracer.core.errors import InvalidParameterError, LoadError

# @intent:test_suite 設定ファイルの読み込みとシステム構築の契約を検証します。

class TestConfigLoader:
    # @intent:test_case_parse 数値表記（0x、$、10進）とパスの解決を検証します。
    def test_load_full_config(self, tmp_path):
        config_file = tmp_path / "system.yaml"
        config_file.write_text(
            "rom: roms/test.gb\n"
            "symbols: test.sym\n"
            "initial_state:\n"
            "  pc: 0x0100\n"
            "  sp: '$DFFF'\n"
            "  registers:\n"
            "    A: 0x11\n"
            "    hl: 49152\n"
            "io_registers:\n"
            "  0xFF07: 0x05\n"
            "  '$FFFF': 0x04\n",
            encoding="utf-8",
        )
        config = ConfigLoader().load_from_file(config_file)
        assert config.rom == str(tmp_path / "roms" / "test.gb")
        assert config.symbols == str(tmp_path / "test.sym")
        assert config.initial_state.pc == 0x0100
        assert config.initial_state.sp == 0xDFFF
        assert config.initial_state.registers == {"a": 0x11, "hl": 0xC000}
        assert config.io_registers == {0xFF07: 0x05, 0xFFFF: 0x04}

    # @intent:test_case_empty 空の設定ファイルは既定値の設定になることを検証します。
    def test_empty_config(self, tmp_path):
        config_file = tmp_path / "empty.yaml"
        config_file.write_text("", encoding="utf-8")
        config = ConfigLoader().load_from_file(config_file)
        assert config.rom is None
        assert config.initial_state.pc is None
        assert config.io_registers == {}

    # @intent:test_case_invalid 未知のレジスタ名や不正な数値はInvalidParameterErrorになることを検証します。
    @pytest.mark.parametrize("body", [
        "initial_state:\n  registers:\n    IX: 0x10\n",
        "initial_state:\n  pc: zzz\n",
        "initial_state:\n  pc: true\n",
        "- just\n- a list\n",
        "rom: [unclosed\n",
    ])
    def test_invalid_config(self, tmp_path, body):
        config_file = tmp_path / "bad.yaml"
        config_file.write_text(body, encoding="utf-8")
        with pytest.raises(InvalidParameterError):
            ConfigLoader().load_from_file(config_file)

    # @intent:test_case_missing 存在しない設定ファイルはLoadErrorになることを検証します。
    def test_missing_file(self, tmp_path):
        with pytest.raises(LoadError):
            ConfigLoader().load_from_file(tmp_path / "missing.yaml")


class TestSystemBuilder:
    # @intent:test_case_build 設定からROM・シンボル・初期状態・I/O値を適用したマシンを構築できることを検証します。
    def test_build_system(self, tmp_path):
        rom = tmp_path / "test.gb"
        rom.write_bytes(bytes([0x00] * 0x100 + [0x3C]))
        sym = tmp_path / "test.sym"
        sym.write_text("00:0100 Start\n", encoding="utf-8")
        config = SystemConfig(
            rom=str(rom),
            symbols=str(sym),
            initial_state=CpuInitialState(pc=0x0100, registers={"a": 0x41, "f": 0xFF}),
            io_registers={0xFF07: 0x05, 0xFFFF: 0x04},
        )
        machine = SystemBuilder().build_system(config)
        state = machine.cpu.get_state()
        assert state.pc == 0x0100
        assert state.a == 0x41
        assert state.f == 0xF0
        assert state.sp == 0xFFFE
        assert machine.timer.get_registers().tac == 0x05
        assert machine.interrupts.enable_mask == 0x04
        assert machine.mmu.get_and_clear_activity_log() == []

        snapshot = machine.step()
        assert snapshot.metadata.symbol_info == "Start: INC A"
        assert machine.cpu.get_state().a == 0x42

    # @intent:test_case_invalid I/Oウィンドウ外へのio_registers指定はInvalidParameterErrorになることを検証します。
    def test_io_register_outside_window(self):
        config = SystemConfig(io_registers={0xC000: 0x01})
        with pytest.raises(InvalidParameterError):
            SystemBuilder().build_system(config)
