"""
LR35902逆アセンブラモジュール。

メモリ上のバイナリデータを解析し、LR35902アセンブリ言語のニーモニック形式に変換します。
"""
from typing import List, Tuple

from dmg_core_tracer.transport.bus import Bus
from dmg_core_tracer.core.errors import UndefinedOpcodeError
from dmg_core_tracer.arch.lr35902.instructions import decode_opcode

# @intent:responsibility 指定されたメモリ範囲のバイナリデータを解析し、アドレスとニーモニックのリストを返します。
def disassemble(bus: Bus, start_addr: int, length: int) -> List[Tuple[int, str, str]]:
    """
    メモリ上のデータを読み取り、(アドレス, 16進ダンプ, ニーモニック) のタプルのリストを返します。
    バスアクティビティを汚さないよう、全ての読み出しはpeekで行います。
    未定義オペコードは "DB $xx" として1バイトずつ表示します。
    """
    result = []
    current_addr = start_addr
    end_addr = start_addr + length

    while current_addr < end_addr:
        if current_addr > 0xFFFF:
            break

        opcode = bus.peek(current_addr)
        try:
            operation = decode_opcode(opcode, bus, current_addr, read=bus.peek)
        except UndefinedOpcodeError:
            result.append((current_addr, f"{opcode:02X}", f"DB ${opcode:02X}"))
            current_addr += 1
            continue

        if operation.opcode_hex.startswith("CB") and len(operation.opcode_hex) == 4:
            hex_dump = f"CB {operation.opcode_hex[2:]}"
        else:
            hex_bytes = [f"{opcode:02X}"] + [f"{b:02X}" for b in operation.operand_bytes]
            hex_dump = " ".join(hex_bytes)

        mnemonic = operation.mnemonic
        if operation.operands:
            mnemonic += " " + ",".join(operation.operands)

        result.append((current_addr, hex_dump, mnemonic))
        current_addr += operation.length

    return result
