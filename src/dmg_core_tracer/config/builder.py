import logging

from dmg_core_tracer.arch.lr35902.cpu import Lr35902Cpu
from dmg_core_tracer.core.errors import InvalidParameterError
from dmg_core_tracer.loader.loader import SymbolFileLoader
from dmg_core_tracer.system.machine import GameBoy
from .models import SystemConfig, CpuInitialState

logger = logging.getLogger(__name__)

# @intent:responsibility システム構成（Config）に基づいてGameBoyを生成し、ROM・シンボル・初期状態を適用します。
class SystemBuilder:
    def build_system(self, config: SystemConfig) -> GameBoy:
        machine = GameBoy()

        if config.rom:
            machine.load_image_file(config.rom)
        if config.symbols:
            machine.cpu.set_symbol_map(SymbolFileLoader().load_file(config.symbols))

        # 初期状態の適用
        self.apply_initial_state(machine.cpu, config.initial_state)

        for address, value in config.io_registers.items():
            if not (0xFF00 <= address <= 0xFF7F or address == 0xFFFF):
                raise InvalidParameterError(f"io_registers address {address:#06x} is outside of the I/O window.")
            machine.write_io(address, value & 0xFF)
        machine.mmu.get_and_clear_activity_log()

        logger.info("Built system from config (rom=%s)", config.rom)
        return machine

    # @intent:responsibility Configで定義された初期状態をCPUに適用します。
    # @intent:rationale 指定のないレジスタは電源投入時の値のまま残します。
    def apply_initial_state(self, cpu: Lr35902Cpu, config_state: CpuInitialState) -> None:
        """
        CPUをリセットし、Configから指定された初期値を適用します。
        """
        cpu.reset()
        state = cpu.get_state()

        if config_state.pc is not None:
            state.pc = config_state.pc & 0xFFFF
        if config_state.sp is not None:
            state.sp = config_state.sp & 0xFFFF
        for reg_name, value in config_state.registers.items():
            width = 0xFFFF if len(reg_name) == 2 else 0xFF
            if reg_name == "f":
                value &= 0xF0
            setattr(state, reg_name, value & width)
