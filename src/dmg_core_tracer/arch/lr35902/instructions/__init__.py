"""
LR35902命令セット実装パッケージ。
"""
from typing import Callable, List, Optional

from dmg_core_tracer.transport.bus import Bus
from dmg_core_tracer.core.snapshot import Operation
from dmg_core_tracer.core.errors import UndefinedOpcodeError
from dmg_core_tracer.devices.interrupt import InterruptController
from dmg_core_tracer.arch.lr35902.state import Lr35902CpuState
from .base import OpcodeEntry, signed8
from .maps import OPCODE_TABLE, CB_OPCODE_TABLE, CB_PREFIX, UNDEFINED_OPCODES


# @intent:utility_function プレースホルダーを含むニーモニックから表示用オペランドを生成します。
def _format_operands(mnemonic: str, operand_bytes: List[int], pc: int, length: int) -> List[str]:
    if not operand_bytes:
        return []
    if "d16" in mnemonic or "a16" in mnemonic:
        return [f"${(operand_bytes[1] << 8) | operand_bytes[0]:04X}"]
    value = operand_bytes[0]
    if "a8" in mnemonic:
        return [f"$FF{value:02X}"]
    if "r8" in mnemonic:
        if mnemonic.startswith("JR"):
            # 相対分岐は分岐先アドレスで表示
            return [f"${(pc + length + signed8(value)) & 0xFFFF:04X}"]
        return [f"{signed8(value):+d}"]
    if "d8" in mnemonic:
        return [f"${value:02X}"]
    return []

# @intent:responsibility 与えられたオペコードをLR35902の命令としてデコードします。
# @intent:pre-condition `pc`はデコードするオペコードの先頭アドレスを指している必要があります。
# @intent:post-condition 未定義オペコードの場合はUndefinedOpcodeErrorを送出します。
def decode_opcode(opcode: int, bus: Bus, pc: int, read: Optional[Callable[[int], int]] = None) -> Operation:
    """
    LR35902のオペコードをデコードし、Operationオブジェクトを返します。
    CBプレフィックスの場合は2バイト目を読み、拡張表から命令を引きます。
    `read`を指定するとオペランドの読み出しに使用されます（逆アセンブラはbus.peekを渡します）。
    """
    read = read or bus.read
    if opcode == CB_PREFIX:
        cb_opcode = read((pc + 1) & 0xFFFF)
        entry = CB_OPCODE_TABLE[cb_opcode]
        return Operation(
            opcode_hex=f"CB{cb_opcode:02X}",
            mnemonic=entry.mnemonic,
            cycle_count=entry.cycles,
            length=entry.length,
            branch_cycle_count=entry.cycles_taken,
        )

    entry = OPCODE_TABLE.get(opcode)
    if entry is None:
        raise UndefinedOpcodeError(pc, opcode)
    operand_bytes = [read((pc + i) & 0xFFFF) for i in range(1, entry.length)]
    if opcode == 0x10:
        # STOPの2バイト目はオペランドとして表示しない
        operands: List[str] = []
    else:
        operands = _format_operands(entry.mnemonic, operand_bytes, pc, entry.length)
    return Operation(
        opcode_hex=f"{opcode:02X}",
        mnemonic=entry.mnemonic,
        operands=operands,
        operand_bytes=operand_bytes,
        cycle_count=entry.cycles,
        length=entry.length,
        branch_cycle_count=entry.cycles_taken,
    )

# @intent:responsibility Operationに対応するOpcodeEntryを返します。
def lookup_entry(operation: Operation) -> OpcodeEntry:
    code = int(operation.opcode_hex, 16)
    if code > 0xFF:
        return CB_OPCODE_TABLE[code & 0xFF]
    return OPCODE_TABLE[code]

# @intent:responsibility デコードされた命令を実行し、消費したサイクル数を返します。
# @intent:pre-condition `operation`はdecode_opcodeが返した有効なOperationである必要があります。
def execute_instruction(operation: Operation, state: Lr35902CpuState, bus: Bus,
                        interrupts: InterruptController) -> int:
    """
    デコードされたLR35902命令を実行し、CPUの状態を変更します。
    条件付き命令は分岐した場合にbranch_cycle_countを、それ以外はcycle_countを返します。
    """
    entry = lookup_entry(operation)
    taken = entry.execute(state, bus, operation, interrupts)
    return operation.branch_cycle_count if taken else operation.cycle_count


__all__ = [
    "decode_opcode", "execute_instruction", "lookup_entry",
    "OPCODE_TABLE", "CB_OPCODE_TABLE", "UNDEFINED_OPCODES",
]
