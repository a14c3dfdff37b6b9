"""
LR35902命令セット実装のための共通ヘルパー関数と定数。
"""
from dataclasses import dataclass
from typing import Callable, Optional

from dmg_core_tracer.arch.lr35902.state import Lr35902CpuState
from dmg_core_tracer.core.errors import InvalidParameterError
from dmg_core_tracer.core.snapshot import Operation
from dmg_core_tracer.devices.interrupt import InterruptController
from dmg_core_tracer.transport.bus import Bus

# @intent:data_structure 命令の実行関数の型。条件付き分岐命令は分岐した場合にTrueを返します。
ExecuteFn = Callable[[Lr35902CpuState, Bus, Operation, InterruptController], Optional[bool]]


# @intent:data_structure オペコード表の1エントリ。ニーモニック、バイト長、サイクル数、実行関数を保持します。
@dataclass(frozen=True)
class OpcodeEntry:
    mnemonic: str # 例: "LD B,d8"。d8/d16/a8/a16/r8 はオペランドのプレースホルダー
    length: int
    cycles: int # 分岐しない場合のサイクル数
    cycles_taken: int # 分岐した場合のサイクル数（条件なし命令ではcyclesと同じ）
    execute: ExecuteFn


# @intent:utility_function OpcodeEntryを生成します。cycles_takenを省略するとcyclesと同じになります。
def make_entry(mnemonic: str, length: int, cycles: int, execute: ExecuteFn,
               cycles_taken: Optional[int] = None) -> OpcodeEntry:
    return OpcodeEntry(mnemonic, length, cycles, cycles if cycles_taken is None else cycles_taken, execute)


# Helper functions for register mapping
REGISTER_CODES = {
    0b000: "B", 0b001: "C", 0b010: "D", 0b011: "E",
    0b100: "H", 0b101: "L", 0b110: "(HL)", 0b111: "A"
}

# @intent:utility_function 指定されたコードに対応するレジスタ名を返します。
# @intent:pre-condition codeは0-7である必要があります。範囲外はInvalidParameterErrorです。
def get_register_name(code: int) -> str:
    if code not in REGISTER_CODES:
        raise InvalidParameterError(f"Invalid register code: {code}")
    return REGISTER_CODES[code]

# @intent:utility_function レジスタ名（または(HL)）に基づいて現在の値を取得します。
def get_register_value(state: Lr35902CpuState, bus: Bus, reg_name: str) -> int:
    if reg_name == "(HL)":
        return bus.read(state.hl)
    return getattr(state, reg_name.lower())

# @intent:utility_function レジスタ名（または(HL)）に値を設定します。
def set_register_value(state: Lr35902CpuState, bus: Bus, reg_name: str, value: int) -> None:
    if reg_name == "(HL)":
        bus.write(state.hl, value & 0xFF)
    else:
        setattr(state, reg_name.lower(), value & 0xFF)

# @intent:utility_function 16ビット演算で使用されるレジスタペア名(rr)を返します。
def get_rr_reg_name(code: int) -> str:
    names = {0b00: "BC", 0b01: "DE", 0b10: "HL", 0b11: "SP"}
    if code not in names:
        raise InvalidParameterError(f"Invalid register pair code: {code}")
    return names[code]

# @intent:utility_function PUSH/POP命令で使用されるレジスタペア名を返します。
def get_push_pop_reg_name(code: int) -> str:
    names = {0b00: "BC", 0b01: "DE", 0b10: "HL", 0b11: "AF"}
    if code not in names:
        raise InvalidParameterError(f"Invalid register pair code: {code}")
    return names[code]

CONDITION_NAMES = {0b00: "NZ", 0b01: "Z", 0b10: "NC", 0b11: "C"}

# @intent:utility_function 条件コード(cc)の名前を返します。
def get_condition_name(code: int) -> str:
    if code not in CONDITION_NAMES:
        raise InvalidParameterError(f"Invalid condition code: {code}")
    return CONDITION_NAMES[code]

# @intent:utility_function 条件コード(cc)が現在のフラグで成立するかを判定します。
def check_condition(state: Lr35902CpuState, code: int) -> bool:
    if code == 0b00:
        return not state.flag_z
    if code == 0b01:
        return state.flag_z
    if code == 0b10:
        return not state.flag_c
    return state.flag_c

# @intent:utility_function ビット番号からビットマスクを生成します。
# @intent:pre-condition bitは0-7である必要があります。範囲外はInvalidParameterErrorです。
def bit_mask(bit: int) -> int:
    if not 0 <= bit <= 7:
        raise InvalidParameterError(f"Invalid bit index: {bit}")
    return 1 << bit

# --- オペランド ---

def imm8(operation: Operation) -> int:
    return operation.operand_bytes[0]

def imm16(operation: Operation) -> int:
    low, high = operation.operand_bytes
    return (high << 8) | low

def signed8(value: int) -> int:
    return value - 0x100 if value & 0x80 else value

# --- スタック ---

# @intent:utility_function 16ビット値をスタックに積みます。上位バイトがSP-1、下位バイトがSP-2に書かれます。
def push_word(state: Lr35902CpuState, bus: Bus, value: int) -> None:
    state.sp = (state.sp - 1) & 0xFFFF
    bus.write(state.sp, (value >> 8) & 0xFF)
    state.sp = (state.sp - 1) & 0xFFFF
    bus.write(state.sp, value & 0xFF)

# @intent:utility_function スタックから16ビット値を取り出します。下位バイト、上位バイトの順に読みます。
def pop_word(state: Lr35902CpuState, bus: Bus) -> int:
    low = bus.read(state.sp)
    state.sp = (state.sp + 1) & 0xFFFF
    high = bus.read(state.sp)
    state.sp = (state.sp + 1) & 0xFFFF
    return (high << 8) | low
