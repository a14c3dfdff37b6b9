"""
LR35902 算術・論理演算命令の実装。
フラグ計算そのものは arch/lr35902/alu.py に委譲します。
"""
from dmg_core_tracer.arch.lr35902.state import Lr35902CpuState
from dmg_core_tracer.arch.lr35902 import alu
from dmg_core_tracer.core.snapshot import Operation
from dmg_core_tracer.devices.interrupt import InterruptController
from dmg_core_tracer.transport.bus import Bus
from .base import get_register_name, get_register_value, set_register_value, get_rr_reg_name, imm8

# @intent:constant オペコードのビット3-5で選択される8種類のA演算。
ALU_OPERATIONS = {
    0b000: "ADD A,", 0b001: "ADC A,", 0b010: "SUB ", 0b011: "SBC A,",
    0b100: "AND ", 0b101: "XOR ", 0b110: "OR ", 0b111: "CP ",
}


def _opcode(operation: Operation) -> int:
    return int(operation.opcode_hex, 16)

# @intent:utility_function Aレジスタと値の間で選択された演算を行います。CPは結果をAに書き戻しません。
def apply_alu_operation(state: Lr35902CpuState, op: int, value: int) -> None:
    a = state.a
    if op == 0b000:
        state.a = alu.add8(state, a, value)
    elif op == 0b001:
        state.a = alu.add8(state, a, value, int(state.flag_c))
    elif op == 0b010:
        state.a = alu.sub8(state, a, value)
    elif op == 0b011:
        state.a = alu.sub8(state, a, value, int(state.flag_c))
    elif op == 0b100:
        state.a = alu.logic8(state, a & value, h_flag=True)
    elif op == 0b101:
        state.a = alu.logic8(state, a ^ value)
    elif op == 0b110:
        state.a = alu.logic8(state, a | value)
    else:
        alu.sub8(state, a, value)

# ADD/ADC/SUB/SBC/AND/XOR/OR/CP r
def execute_alu_r(state: Lr35902CpuState, bus: Bus, operation: Operation, interrupts: InterruptController) -> None:
    opcode = _opcode(operation)
    value = get_register_value(state, bus, get_register_name(opcode & 0b111))
    apply_alu_operation(state, (opcode >> 3) & 0b111, value)

# ADD/ADC/SUB/SBC/AND/XOR/OR/CP d8
def execute_alu_d8(state: Lr35902CpuState, bus: Bus, operation: Operation, interrupts: InterruptController) -> None:
    apply_alu_operation(state, (_opcode(operation) >> 3) & 0b111, imm8(operation))

# INC r
def execute_inc_r(state: Lr35902CpuState, bus: Bus, operation: Operation, interrupts: InterruptController) -> None:
    reg_name = get_register_name((_opcode(operation) >> 3) & 0b111)
    value = get_register_value(state, bus, reg_name)
    set_register_value(state, bus, reg_name, alu.inc8(state, value))

# DEC r
def execute_dec_r(state: Lr35902CpuState, bus: Bus, operation: Operation, interrupts: InterruptController) -> None:
    reg_name = get_register_name((_opcode(operation) >> 3) & 0b111)
    value = get_register_value(state, bus, reg_name)
    set_register_value(state, bus, reg_name, alu.dec8(state, value))

# INC rr (フラグは変化しません)
def execute_inc_rr(state: Lr35902CpuState, bus: Bus, operation: Operation, interrupts: InterruptController) -> None:
    rr_name = get_rr_reg_name((_opcode(operation) >> 4) & 0b11).lower()
    setattr(state, rr_name, (getattr(state, rr_name) + 1) & 0xFFFF)

# DEC rr (フラグは変化しません)
def execute_dec_rr(state: Lr35902CpuState, bus: Bus, operation: Operation, interrupts: InterruptController) -> None:
    rr_name = get_rr_reg_name((_opcode(operation) >> 4) & 0b11).lower()
    setattr(state, rr_name, (getattr(state, rr_name) - 1) & 0xFFFF)

# ADD HL,rr
def execute_add_hl_rr(state: Lr35902CpuState, bus: Bus, operation: Operation, interrupts: InterruptController) -> None:
    rr_name = get_rr_reg_name((_opcode(operation) >> 4) & 0b11).lower()
    state.hl = alu.add16(state, state.hl, getattr(state, rr_name))

# ADD SP,r8
def execute_add_sp_r8(state: Lr35902CpuState, bus: Bus, operation: Operation, interrupts: InterruptController) -> None:
    state.sp = alu.add_sp_offset(state, state.sp, imm8(operation))

def execute_daa(state: Lr35902CpuState, bus: Bus, operation: Operation, interrupts: InterruptController) -> None:
    state.a = alu.daa(state, state.a)

# CPL: Aのビット反転。N/Hがセットされます。
def execute_cpl(state: Lr35902CpuState, bus: Bus, operation: Operation, interrupts: InterruptController) -> None:
    state.a = (~state.a) & 0xFF
    state.set_flags(n=True, h=True)

# SCF: キャリーをセットします。
def execute_scf(state: Lr35902CpuState, bus: Bus, operation: Operation, interrupts: InterruptController) -> None:
    state.set_flags(n=False, h=False, c=True)

# CCF: キャリーを反転します。
def execute_ccf(state: Lr35902CpuState, bus: Bus, operation: Operation, interrupts: InterruptController) -> None:
    state.set_flags(n=False, h=False, c=not state.flag_c)

# RLCA/RRCA/RLA/RRA
# @intent:rationale Aレジスタ専用のローテートはZを常にクリアします（CBプレフィックス版は結果からZを設定）。
def execute_rotate_a(state: Lr35902CpuState, bus: Bus, operation: Operation, interrupts: InterruptController) -> None:
    rotate = {0x07: alu.rlc, 0x0F: alu.rrc, 0x17: alu.rl, 0x1F: alu.rr}[_opcode(operation)]
    state.a = rotate(state, state.a, set_zero=False)
