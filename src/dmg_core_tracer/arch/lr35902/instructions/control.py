"""
LR35902 制御命令（分岐、サブルーチン、割り込み制御、システム制御）の実装。
"""
import logging

from dmg_core_tracer.arch.lr35902.state import Lr35902CpuState
from dmg_core_tracer.core.snapshot import Operation
from dmg_core_tracer.devices.interrupt import InterruptController
from dmg_core_tracer.transport.bus import Bus
from .base import check_condition, imm8, imm16, signed8, push_word, pop_word

logger = logging.getLogger(__name__)


def _condition_code(operation: Operation) -> int:
    return (int(operation.opcode_hex, 16) >> 3) & 0b11

def execute_nop(state: Lr35902CpuState, bus: Bus, operation: Operation, interrupts: InterruptController) -> None:
    # Intentional: NOP (No Operation)
    pass

# @intent:responsibility CPUをHALT状態にします。許可された割り込みが要求されるまで停止し続けます。
def execute_halt(state: Lr35902CpuState, bus: Bus, operation: Operation, interrupts: InterruptController) -> None:
    state.halted = True

# @intent:responsibility CPUをSTOP状態にします。ジョイパッド割り込みの要求で復帰します。
def execute_stop(state: Lr35902CpuState, bus: Bus, operation: Operation, interrupts: InterruptController) -> None:
    state.stopped = True
    logger.warning("STOP executed at $%04X", (state.pc - operation.length) & 0xFFFF)

def execute_di(state: Lr35902CpuState, bus: Bus, operation: Operation, interrupts: InterruptController) -> None:
    interrupts.set_master_enable(False)

# @intent:rationale EIは次の命令が完了した後に有効になります。
def execute_ei(state: Lr35902CpuState, bus: Bus, operation: Operation, interrupts: InterruptController) -> None:
    interrupts.set_master_enable(True, delayed=True)

# JR r8
def execute_jr(state: Lr35902CpuState, bus: Bus, operation: Operation, interrupts: InterruptController) -> None:
    state.pc = (state.pc + signed8(imm8(operation))) & 0xFFFF

# JR cc,r8
def execute_jr_cc(state: Lr35902CpuState, bus: Bus, operation: Operation, interrupts: InterruptController) -> bool:
    if not check_condition(state, _condition_code(operation)):
        return False
    state.pc = (state.pc + signed8(imm8(operation))) & 0xFFFF
    return True

# JP a16
def execute_jp(state: Lr35902CpuState, bus: Bus, operation: Operation, interrupts: InterruptController) -> None:
    state.pc = imm16(operation)

# JP cc,a16
def execute_jp_cc(state: Lr35902CpuState, bus: Bus, operation: Operation, interrupts: InterruptController) -> bool:
    if not check_condition(state, _condition_code(operation)):
        return False
    state.pc = imm16(operation)
    return True

# JP (HL)
def execute_jp_hl(state: Lr35902CpuState, bus: Bus, operation: Operation, interrupts: InterruptController) -> None:
    state.pc = state.hl

# CALL a16
# PCは既に次の命令の先頭を指しているため、それを戻り先として積みます。
def execute_call(state: Lr35902CpuState, bus: Bus, operation: Operation, interrupts: InterruptController) -> None:
    push_word(state, bus, state.pc)
    state.pc = imm16(operation)

# CALL cc,a16
def execute_call_cc(state: Lr35902CpuState, bus: Bus, operation: Operation, interrupts: InterruptController) -> bool:
    if not check_condition(state, _condition_code(operation)):
        return False
    push_word(state, bus, state.pc)
    state.pc = imm16(operation)
    return True

def execute_ret(state: Lr35902CpuState, bus: Bus, operation: Operation, interrupts: InterruptController) -> None:
    state.pc = pop_word(state, bus)

# RET cc
def execute_ret_cc(state: Lr35902CpuState, bus: Bus, operation: Operation, interrupts: InterruptController) -> bool:
    if not check_condition(state, _condition_code(operation)):
        return False
    state.pc = pop_word(state, bus)
    return True

# RETI: 復帰と同時に割り込みを即座に許可します（EIのような遅延はありません）。
def execute_reti(state: Lr35902CpuState, bus: Bus, operation: Operation, interrupts: InterruptController) -> None:
    state.pc = pop_word(state, bus)
    interrupts.set_master_enable(True)

# RST n
def execute_rst(state: Lr35902CpuState, bus: Bus, operation: Operation, interrupts: InterruptController) -> None:
    push_word(state, bus, state.pc)
    state.pc = int(operation.opcode_hex, 16) & 0x38
