"""
LR35902 命令マッピング定義。
各命令モジュールから関数をインポートし、オペコードとOpcodeEntryの対応表を構築します。

サイクル数はクロックサイクル（NOP = 4）単位です。
表に存在しないオペコード（D3 DB DD E3 E4 EB EC ED F4 FC FD）は未定義命令です。
"""
from typing import Dict

from .base import (
    OpcodeEntry, make_entry, get_register_name, get_rr_reg_name, get_push_pop_reg_name,
    get_condition_name
)
from .load import (
    INDIRECT_NAMES,
    execute_ld_r_r, execute_ld_r_d8, execute_ld_rr_d16, execute_ld_ind_a, execute_ld_a_ind,
    execute_ld_a16_sp, execute_ldh_a8_a, execute_ldh_a_a8, execute_ld_c_a, execute_ld_a_c,
    execute_ld_a16_a, execute_ld_a_a16, execute_ld_sp_hl, execute_ld_hl_sp_r8, execute_push, execute_pop
)
from .alu import (
    ALU_OPERATIONS,
    execute_alu_r, execute_alu_d8, execute_inc_r, execute_dec_r, execute_inc_rr, execute_dec_rr,
    execute_add_hl_rr, execute_add_sp_r8, execute_daa, execute_cpl, execute_scf, execute_ccf,
    execute_rotate_a
)
from .control import (
    execute_nop, execute_halt, execute_stop, execute_di, execute_ei, execute_jr, execute_jr_cc,
    execute_jp, execute_jp_cc, execute_jp_hl, execute_call, execute_call_cc, execute_ret,
    execute_ret_cc, execute_reti, execute_rst
)
from .cb import SHIFT_OPERATIONS, execute_cb_shift, execute_cb_bit, execute_cb_res, execute_cb_set

# @intent:constant CBプレフィックスのオペコード。2バイト目はCB_OPCODE_TABLEで引きます。
CB_PREFIX = 0xCB

UNDEFINED_OPCODES = frozenset([0xD3, 0xDB, 0xDD, 0xE3, 0xE4, 0xEB, 0xEC, 0xED, 0xF4, 0xFC, 0xFD])


def _hl_cost(reg_name: str, base: int, hl_cost: int) -> int:
    return hl_cost if reg_name == "(HL)" else base

# @intent:responsibility 8ビットレジスタを対象とする規則的な命令群（LD/INC/DEC/ALU）を登録します。
def _register_group(table: Dict[int, OpcodeEntry]) -> None:
    for code in range(8):
        reg = get_register_name(code)
        table[0x04 | (code << 3)] = make_entry(f"INC {reg}", 1, _hl_cost(reg, 4, 12), execute_inc_r)
        table[0x05 | (code << 3)] = make_entry(f"DEC {reg}", 1, _hl_cost(reg, 4, 12), execute_dec_r)
        table[0x06 | (code << 3)] = make_entry(f"LD {reg},d8", 2, _hl_cost(reg, 8, 12), execute_ld_r_d8)
        for src_code in range(8):
            opcode = 0x40 | (code << 3) | src_code
            if opcode == 0x76:
                continue # HALT
            src = get_register_name(src_code)
            cycles = 8 if "(HL)" in (reg, src) else 4
            table[opcode] = make_entry(f"LD {reg},{src}", 1, cycles, execute_ld_r_r)
        for op_code, prefix in ALU_OPERATIONS.items():
            table[0x80 | (op_code << 3) | code] = make_entry(
                f"{prefix}{reg}", 1, _hl_cost(reg, 4, 8), execute_alu_r
            )

# @intent:responsibility 16ビットレジスタペアを対象とする命令群を登録します。
def _register_pair_group(table: Dict[int, OpcodeEntry]) -> None:
    for code in range(4):
        rr = get_rr_reg_name(code)
        qq = get_push_pop_reg_name(code)
        ind = INDIRECT_NAMES[code]
        table[0x01 | (code << 4)] = make_entry(f"LD {rr},d16", 3, 12, execute_ld_rr_d16)
        table[0x02 | (code << 4)] = make_entry(f"LD {ind},A", 1, 8, execute_ld_ind_a)
        table[0x03 | (code << 4)] = make_entry(f"INC {rr}", 1, 8, execute_inc_rr)
        table[0x09 | (code << 4)] = make_entry(f"ADD HL,{rr}", 1, 8, execute_add_hl_rr)
        table[0x0A | (code << 4)] = make_entry(f"LD A,{ind}", 1, 8, execute_ld_a_ind)
        table[0x0B | (code << 4)] = make_entry(f"DEC {rr}", 1, 8, execute_dec_rr)
        table[0xC1 | (code << 4)] = make_entry(f"POP {qq}", 1, 12, execute_pop)
        table[0xC5 | (code << 4)] = make_entry(f"PUSH {qq}", 1, 16, execute_push)

# @intent:responsibility 条件付き分岐命令群を登録します。分岐した場合としない場合でサイクル数が異なります。
def _conditional_group(table: Dict[int, OpcodeEntry]) -> None:
    for code in range(4):
        cc = get_condition_name(code)
        table[0x20 | (code << 3)] = make_entry(f"JR {cc},r8", 2, 8, execute_jr_cc, cycles_taken=12)
        table[0xC0 | (code << 3)] = make_entry(f"RET {cc}", 1, 8, execute_ret_cc, cycles_taken=20)
        table[0xC2 | (code << 3)] = make_entry(f"JP {cc},a16", 3, 12, execute_jp_cc, cycles_taken=16)
        table[0xC4 | (code << 3)] = make_entry(f"CALL {cc},a16", 3, 12, execute_call_cc, cycles_taken=24)

def _build_opcode_table() -> Dict[int, OpcodeEntry]:
    table: Dict[int, OpcodeEntry] = {}
    _register_group(table)
    _register_pair_group(table)
    _conditional_group(table)
    for op_code, prefix in ALU_OPERATIONS.items():
        table[0xC6 | (op_code << 3)] = make_entry(f"{prefix}d8", 2, 8, execute_alu_d8)
    for vector in range(0x00, 0x40, 0x08):
        table[0xC7 | vector] = make_entry(f"RST {vector:02X}H", 1, 16, execute_rst)
    table.update({
        0x00: make_entry("NOP", 1, 4, execute_nop),
        0x07: make_entry("RLCA", 1, 4, execute_rotate_a),
        0x08: make_entry("LD (a16),SP", 3, 20, execute_ld_a16_sp),
        0x0F: make_entry("RRCA", 1, 4, execute_rotate_a),
        0x10: make_entry("STOP", 2, 4, execute_stop),
        0x17: make_entry("RLA", 1, 4, execute_rotate_a),
        0x18: make_entry("JR r8", 2, 12, execute_jr),
        0x1F: make_entry("RRA", 1, 4, execute_rotate_a),
        0x27: make_entry("DAA", 1, 4, execute_daa),
        0x2F: make_entry("CPL", 1, 4, execute_cpl),
        0x37: make_entry("SCF", 1, 4, execute_scf),
        0x3F: make_entry("CCF", 1, 4, execute_ccf),
        0x76: make_entry("HALT", 1, 4, execute_halt),
        0xC3: make_entry("JP a16", 3, 16, execute_jp),
        0xC9: make_entry("RET", 1, 16, execute_ret),
        0xCD: make_entry("CALL a16", 3, 24, execute_call),
        0xD9: make_entry("RETI", 1, 16, execute_reti),
        0xE0: make_entry("LDH (a8),A", 2, 12, execute_ldh_a8_a),
        0xE2: make_entry("LD (C),A", 1, 8, execute_ld_c_a),
        0xE8: make_entry("ADD SP,r8", 2, 16, execute_add_sp_r8),
        0xE9: make_entry("JP (HL)", 1, 4, execute_jp_hl),
        0xEA: make_entry("LD (a16),A", 3, 16, execute_ld_a16_a),
        0xF0: make_entry("LDH A,(a8)", 2, 12, execute_ldh_a_a8),
        0xF2: make_entry("LD A,(C)", 1, 8, execute_ld_a_c),
        0xF3: make_entry("DI", 1, 4, execute_di),
        0xF8: make_entry("LD HL,SP+r8", 2, 12, execute_ld_hl_sp_r8),
        0xF9: make_entry("LD SP,HL", 1, 8, execute_ld_sp_hl),
        0xFA: make_entry("LD A,(a16)", 3, 16, execute_ld_a_a16),
        0xFB: make_entry("EI", 1, 4, execute_ei),
    })
    return table

def _build_cb_opcode_table() -> Dict[int, OpcodeEntry]:
    table: Dict[int, OpcodeEntry] = {}
    for code in range(8):
        reg = get_register_name(code)
        for index, (name, _) in SHIFT_OPERATIONS.items():
            table[(index << 3) | code] = make_entry(f"{name} {reg}", 2, _hl_cost(reg, 8, 16), execute_cb_shift)
        for bit in range(8):
            table[0x40 | (bit << 3) | code] = make_entry(f"BIT {bit},{reg}", 2, _hl_cost(reg, 8, 12), execute_cb_bit)
            table[0x80 | (bit << 3) | code] = make_entry(f"RES {bit},{reg}", 2, _hl_cost(reg, 8, 16), execute_cb_res)
            table[0xC0 | (bit << 3) | code] = make_entry(f"SET {bit},{reg}", 2, _hl_cost(reg, 8, 16), execute_cb_set)
    return table


OPCODE_TABLE: Dict[int, OpcodeEntry] = _build_opcode_table()
CB_OPCODE_TABLE: Dict[int, OpcodeEntry] = _build_cb_opcode_table()
