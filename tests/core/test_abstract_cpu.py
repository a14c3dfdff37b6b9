# tests/core/test_abstract_cpu.py
"""
dmg_core_tracer.core.cpuモジュールの単体テスト。
"""
import pytest
from typing import Dict, List, Tuple

from dmg_core_tracer.core.state import CpuState
from dmg_core_tracer.core.cpu import AbstractCpu
from dmg_core_tracer.core.snapshot import Operation, StepStatus
from dmg_core_tracer.core.errors import UndefinedOpcodeError
from dmg_core_tracer.transport.bus import Bus, RAM, BusAccessType
from dmg_core_tracer.common.types import RegisterLayoutInfo, RegisterInfo

# @intent:test_suite CPUの状態管理と抽象CPUのテンプレートメソッドの動作を検証します。

class DummyCpu(AbstractCpu):
    """
    0x00をNOP(1バイト、4サイクル)、0x01を0x0020へ書き込む命令として解釈するテスト用CPU。
    それ以外のオペコードは未定義です。
    """
    def __init__(self, bus: Bus, initial_pc: int = 0x0000):
        self._initial_pc = initial_pc
        super().__init__(bus)

    def _create_initial_state(self) -> CpuState:
        return CpuState(pc=self._initial_pc, sp=0xFFFE)

    def _fetch(self) -> int:
        return self._bus.read(self._state.pc)

    def _decode(self, opcode: int) -> Operation:
        if opcode == 0x00:
            return Operation(opcode_hex="00", mnemonic="NOP", cycle_count=4)
        if opcode == 0x01:
            return Operation(opcode_hex="01", mnemonic="POKE", cycle_count=8)
        raise UndefinedOpcodeError(self._state.pc, opcode)

    def _execute(self, operation: Operation) -> int:
        if operation.mnemonic == "POKE":
            self._bus.write(0x0020, 0xFF)
        return operation.cycle_count

    def get_register_map(self) -> Dict[str, int]:
        return {"PC": self._state.pc, "SP": self._state.sp}

    def get_register_layout(self) -> List[RegisterLayoutInfo]:
        return [RegisterLayoutInfo("Test Group", [RegisterInfo("PC", 16), RegisterInfo("SP", 16)])]

    def get_flag_state(self) -> Dict[str, bool]:
        return {}

    def disassemble(self, start_addr: int, length: int) -> List[Tuple[int, str, str]]:
        return [(start_addr + i, "00", "NOP") for i in range(length)]


class TestCpuState:
    """
    CpuStateの単体テスト。
    """
    # @intent:test_case_init CpuStateがデフォルト値で初期化されることを検証します。
    def test_cpu_state_init_default(self):
        state = CpuState()
        assert state.pc == 0x0000
        assert state.sp == 0x0000


class TestAbstractCpu:
    """
    AbstractCpuの単体テスト。
    """
    @pytest.fixture
    def setup_cpu(self):
        bus = Bus()
        bus.register_device(0x0000, 0x00FF, RAM(0x100))
        return DummyCpu(bus), bus

    # @intent:test_case_instantiation 抽象クラスは直接インスタンス化できないことを検証します。
    def test_abstract_cpu_cannot_be_instantiated(self):
        with pytest.raises(TypeError):
            AbstractCpu(Bus())

    # @intent:test_case_step stepがPCを命令長だけ進め、サイクル数とバスアクティビティを記録することを検証します。
    def test_step_records_activity(self, setup_cpu):
        cpu, bus = setup_cpu
        bus.write(0x0000, 0x01)
        bus.write(0x0001, 0x00)

        snapshot = cpu.step()
        assert cpu.get_state().pc == 0x0001
        assert snapshot.state.pc == 0x0001
        assert snapshot.cycles == 8
        assert snapshot.status == StepStatus.EXECUTED
        assert [a.access_type for a in snapshot.bus_activity] == [BusAccessType.READ, BusAccessType.WRITE]

        snapshot = cpu.step()
        assert snapshot.metadata.cycle_count == 12
        assert cpu.get_cycle_count() == 12

    # @intent:test_case_fault 未定義オペコードは例外ではなくFAULTEDのSnapshotとして返されることを検証します。
    def test_step_fault(self, setup_cpu):
        cpu, bus = setup_cpu
        bus.write(0x0000, 0x7F)
        snapshot = cpu.step()
        assert snapshot.is_fault
        assert snapshot.operation.mnemonic == "UNDEFINED"
        assert snapshot.metadata.symbol_info == "Undefined opcode $7F at $0000"
        assert cpu.get_state().pc == 0x0000

    # @intent:test_case_symbols シンボルマップを設定すると逆引きラベルがメタデータに含まれることを検証します。
    def test_symbol_map(self, setup_cpu):
        cpu, _ = setup_cpu
        cpu.set_symbol_map({"entry": 0x0000})
        snapshot = cpu.step()
        assert snapshot.metadata.symbol_info == "entry: NOP"

    # @intent:test_case_reset resetでPC、サイクル数が初期化されることを検証します。
    def test_reset(self, setup_cpu):
        cpu, _ = setup_cpu
        cpu.step()
        cpu.reset()
        assert cpu.get_state().pc == 0x0000
        assert cpu.get_cycle_count() == 0
