"""
LR35902 データ転送命令の実装。
"""
from dmg_core_tracer.arch.lr35902.state import Lr35902CpuState
from dmg_core_tracer.arch.lr35902.alu import add_sp_offset
from dmg_core_tracer.core.snapshot import Operation
from dmg_core_tracer.devices.interrupt import InterruptController
from dmg_core_tracer.transport.bus import Bus
from .base import (
    get_register_name, get_register_value, set_register_value,
    get_rr_reg_name, get_push_pop_reg_name, imm8, imm16, push_word, pop_word
)

# @intent:constant 0x02/0x12/0x22/0x32 (および0x0A系) の間接アドレッシング対象。
INDIRECT_NAMES = {0b00: "(BC)", 0b01: "(DE)", 0b10: "(HL+)", 0b11: "(HL-)"}


def _opcode(operation: Operation) -> int:
    return int(operation.opcode_hex, 16)

# @intent:utility_function 間接アドレスを求め、(HL+)/(HL-)の場合はHLを更新します。
def _indirect_address(state: Lr35902CpuState, code: int) -> int:
    if code == 0b00:
        return state.bc
    if code == 0b01:
        return state.de
    address = state.hl
    state.hl = (address + 1) & 0xFFFF if code == 0b10 else (address - 1) & 0xFFFF
    return address

# LD r,r'
def execute_ld_r_r(state: Lr35902CpuState, bus: Bus, operation: Operation, interrupts: InterruptController) -> None:
    opcode = _opcode(operation)
    dest_name = get_register_name((opcode >> 3) & 0b111)
    src_name = get_register_name(opcode & 0b111)
    value = get_register_value(state, bus, src_name)
    set_register_value(state, bus, dest_name, value)

# LD r,d8
def execute_ld_r_d8(state: Lr35902CpuState, bus: Bus, operation: Operation, interrupts: InterruptController) -> None:
    reg_name = get_register_name((_opcode(operation) >> 3) & 0b111)
    set_register_value(state, bus, reg_name, imm8(operation))

# LD rr,d16
def execute_ld_rr_d16(state: Lr35902CpuState, bus: Bus, operation: Operation, interrupts: InterruptController) -> None:
    rr_name = get_rr_reg_name((_opcode(operation) >> 4) & 0b11).lower()
    setattr(state, rr_name, imm16(operation))

# LD (BC)/(DE)/(HL+)/(HL-),A
def execute_ld_ind_a(state: Lr35902CpuState, bus: Bus, operation: Operation, interrupts: InterruptController) -> None:
    address = _indirect_address(state, (_opcode(operation) >> 4) & 0b11)
    bus.write(address, state.a)

# LD A,(BC)/(DE)/(HL+)/(HL-)
def execute_ld_a_ind(state: Lr35902CpuState, bus: Bus, operation: Operation, interrupts: InterruptController) -> None:
    address = _indirect_address(state, (_opcode(operation) >> 4) & 0b11)
    state.a = bus.read(address)

# LD (a16),SP
def execute_ld_a16_sp(state: Lr35902CpuState, bus: Bus, operation: Operation, interrupts: InterruptController) -> None:
    bus.write_word(imm16(operation), state.sp)

# LDH (a8),A
def execute_ldh_a8_a(state: Lr35902CpuState, bus: Bus, operation: Operation, interrupts: InterruptController) -> None:
    bus.write(0xFF00 | imm8(operation), state.a)

# LDH A,(a8)
def execute_ldh_a_a8(state: Lr35902CpuState, bus: Bus, operation: Operation, interrupts: InterruptController) -> None:
    state.a = bus.read(0xFF00 | imm8(operation))

# LD (C),A
def execute_ld_c_a(state: Lr35902CpuState, bus: Bus, operation: Operation, interrupts: InterruptController) -> None:
    bus.write(0xFF00 | state.c, state.a)

# LD A,(C)
def execute_ld_a_c(state: Lr35902CpuState, bus: Bus, operation: Operation, interrupts: InterruptController) -> None:
    state.a = bus.read(0xFF00 | state.c)

# LD (a16),A
def execute_ld_a16_a(state: Lr35902CpuState, bus: Bus, operation: Operation, interrupts: InterruptController) -> None:
    bus.write(imm16(operation), state.a)

# LD A,(a16)
def execute_ld_a_a16(state: Lr35902CpuState, bus: Bus, operation: Operation, interrupts: InterruptController) -> None:
    state.a = bus.read(imm16(operation))

# LD SP,HL
def execute_ld_sp_hl(state: Lr35902CpuState, bus: Bus, operation: Operation, interrupts: InterruptController) -> None:
    state.sp = state.hl

# LD HL,SP+r8
def execute_ld_hl_sp_r8(state: Lr35902CpuState, bus: Bus, operation: Operation, interrupts: InterruptController) -> None:
    state.hl = add_sp_offset(state, state.sp, imm8(operation))

# PUSH rr
def execute_push(state: Lr35902CpuState, bus: Bus, operation: Operation, interrupts: InterruptController) -> None:
    reg_name = get_push_pop_reg_name((_opcode(operation) >> 4) & 0b11).lower()
    push_word(state, bus, getattr(state, reg_name))

# POP rr
# @intent:rationale POP AFではFの下位ニブルが常に0になります（afセッターがマスクします）。
def execute_pop(state: Lr35902CpuState, bus: Bus, operation: Operation, interrupts: InterruptController) -> None:
    reg_name = get_push_pop_reg_name((_opcode(operation) >> 4) & 0b11).lower()
    setattr(state, reg_name, pop_word(state, bus))
