"""
LR35902 CBプレフィックス命令（ローテート・シフト、BIT/RES/SET）の実装。

CB命令のOperationは opcode_hex が "CBxx" 形式で、下位バイトが2バイト目のオペコードです。
"""
from dmg_core_tracer.arch.lr35902.state import Lr35902CpuState
from dmg_core_tracer.arch.lr35902 import alu
from dmg_core_tracer.core.snapshot import Operation
from dmg_core_tracer.devices.interrupt import InterruptController
from dmg_core_tracer.transport.bus import Bus
from .base import get_register_name, get_register_value, set_register_value, bit_mask

# @intent:constant ビット3-5で選択されるローテート・シフト命令。
SHIFT_OPERATIONS = {
    0b000: ("RLC", alu.rlc),
    0b001: ("RRC", alu.rrc),
    0b010: ("RL", alu.rl),
    0b011: ("RR", alu.rr),
    0b100: ("SLA", alu.sla),
    0b101: ("SRA", alu.sra),
    0b110: ("SWAP", alu.swap),
    0b111: ("SRL", alu.srl),
}


def _cb_opcode(operation: Operation) -> int:
    return int(operation.opcode_hex, 16) & 0xFF

# RLC/RRC/RL/RR/SLA/SRA/SWAP/SRL r
def execute_cb_shift(state: Lr35902CpuState, bus: Bus, operation: Operation, interrupts: InterruptController) -> None:
    opcode = _cb_opcode(operation)
    reg_name = get_register_name(opcode & 0b111)
    _, shift = SHIFT_OPERATIONS[(opcode >> 3) & 0b111]
    value = get_register_value(state, bus, reg_name)
    set_register_value(state, bus, reg_name, shift(state, value))

# BIT b,r
def execute_cb_bit(state: Lr35902CpuState, bus: Bus, operation: Operation, interrupts: InterruptController) -> None:
    opcode = _cb_opcode(operation)
    value = get_register_value(state, bus, get_register_name(opcode & 0b111))
    alu.check_bit(state, value, (opcode >> 3) & 0b111)

# RES b,r
def execute_cb_res(state: Lr35902CpuState, bus: Bus, operation: Operation, interrupts: InterruptController) -> None:
    opcode = _cb_opcode(operation)
    reg_name = get_register_name(opcode & 0b111)
    value = get_register_value(state, bus, reg_name)
    set_register_value(state, bus, reg_name, value & ~bit_mask((opcode >> 3) & 0b111))

# SET b,r
def execute_cb_set(state: Lr35902CpuState, bus: Bus, operation: Operation, interrupts: InterruptController) -> None:
    opcode = _cb_opcode(operation)
    reg_name = get_register_name(opcode & 0b111)
    value = get_register_value(state, bus, reg_name)
    set_register_value(state, bus, reg_name, value | bit_mask((opcode >> 3) & 0b111))
