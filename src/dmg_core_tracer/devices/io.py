# dmg_core_tracer/devices/io.py
"""
メモリマップドI/Oレジスタ

0xFF00-0xFF7FのI/Oウィンドウと、0xFFFFの割り込み許可レジスタをバスデバイスとして提供します。
各レジスタは個別の読み書き契約（副作用）を持ちます。
"""
from typing import Callable, Dict, Tuple
import logging

from dmg_core_tracer.transport.bus import Device, OPEN_BUS_VALUE
from dmg_core_tracer.devices.interrupt import InterruptController
from dmg_core_tracer.devices.timer import Timer
from dmg_core_tracer.devices.joypad import Joypad

logger = logging.getLogger(__name__)

IO_BASE = 0xFF00
IO_SIZE = 0x80

# レジスタアドレス
P1 = 0xFF00
SB = 0xFF01
SC = 0xFF02
DIV = 0xFF04
TIMA = 0xFF05
TMA = 0xFF06
TAC = 0xFF07
IF = 0xFF0F
DMA = 0xFF46
IE = 0xFFFF

IoReader = Callable[[], int]
IoWriter = Callable[[int], None]

# @intent:constant 外部コンポーネント（シリアル、サウンド、LCD）が所有し、値をそのまま保持するレジスタ。
PASSTHROUGH_REGISTERS = frozenset(
    [SB, SC]
    + [addr for addr in range(0xFF10, 0xFF27) if addr not in (0xFF15, 0xFF1F)]
    + list(range(0xFF30, 0xFF40))
    + list(range(0xFF40, 0xFF46))
    + list(range(0xFF47, 0xFF4C))
)


# @intent:responsibility I/Oウィンドウの各アドレスへのアクセスを、登録されたハンドラに振り分けます。
# @intent:rationale 未実装のアドレスは0xFFを返し書き込みを破棄します。ハードウェアの存在確認を行うプログラムのためです。
class IoRegisters(Device):
    """
    I/Oレジスタウィンドウ (0xFF00-0xFF7F)。

    ジョイパッド、タイマー、IFは対応するデバイスに委譲されます。
    外部コンポーネントのレジスタは値をそのまま保持し、それ以外は未実装として扱います。
    """
    def __init__(self, interrupts: InterruptController, timer: Timer, joypad: Joypad):
        self._interrupts = interrupts
        self._timer = timer
        self._joypad = joypad
        self._latched: Dict[int, int] = {}
        self._handlers: Dict[int, Tuple[IoReader, IoWriter]] = {}
        self._register_defaults()

    def _register_defaults(self) -> None:
        self.register_handler(P1, self._joypad.read, self._joypad.write)
        self.register_handler(DIV, self._timer.read_div, self._timer.write_div)
        self.register_handler(TIMA, self._timer.read_tima, self._timer.write_tima)
        self.register_handler(TMA, self._timer.read_tma, self._timer.write_tma)
        self.register_handler(TAC, self._timer.read_tac, self._timer.write_tac)
        self.register_handler(IF, self._interrupts.read_if, self._interrupts.write_if)

    # @intent:responsibility 指定されたI/Oアドレスに読み書きハンドラを登録します。既存の登録は上書きされます。
    # @intent:pre-condition addressは0xFF00-0xFF7Fの範囲である必要があります。
    def register_handler(self, address: int, reader: IoReader, writer: IoWriter) -> None:
        if not IO_BASE <= address < IO_BASE + IO_SIZE:
            raise ValueError(f"Address {address:#06x} is outside of the I/O window.")
        self._handlers[address] = (reader, writer)

    # @intent:responsibility 外部コンポーネントのレジスタ値を電源投入時の状態に戻します。
    def reset(self) -> None:
        self._latched.clear()

    def read(self, address: int) -> int:
        register = IO_BASE + address
        handler = self._handlers.get(register)
        if handler is not None:
            return handler[0]() & 0xFF
        if register in PASSTHROUGH_REGISTERS:
            return self._latched.get(register, 0x00)
        logger.debug("Read from unimplemented I/O register %#06x", register)
        return OPEN_BUS_VALUE

    def write(self, address: int, data: int) -> None:
        register = IO_BASE + address
        handler = self._handlers.get(register)
        if handler is not None:
            handler[1](data & 0xFF)
        elif register in PASSTHROUGH_REGISTERS:
            self._latched[register] = data & 0xFF
        else:
            logger.debug("Dropped write of %#04x to unimplemented I/O register %#06x", data, register)


# @intent:responsibility 0xFFFFの割り込み許可レジスタを割り込みコントローラの許可マスクに接続します。
class InterruptEnableRegister(Device):
    def __init__(self, interrupts: InterruptController):
        self._interrupts = interrupts

    def read(self, address: int) -> int:
        return self._interrupts.read_ie()

    def write(self, address: int, data: int) -> None:
        self._interrupts.write_ie(data)
