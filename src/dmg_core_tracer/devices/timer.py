# dmg_core_tracer/devices/timer.py
"""
タイマーとクロック

このモジュールは、フリーランニングのディバイダ(DIV)とプログラマブルカウンタ(TIMA/TMA/TAC)、
およびそれらにサイクル数を供給するクロックを提供します。
"""
from dataclasses import dataclass
import logging

from dmg_core_tracer.devices.interrupt import InterruptController, InterruptSource

logger = logging.getLogger(__name__)

# @intent:constant TACの下位2ビットが選択するカウンタ周期（サイクル数）。
TIMER_PERIODS = {
    0b00: 1024,
    0b01: 16,
    0b10: 64,
    0b11: 256,
}

TAC_ENABLE = 0b100

# @intent:constant タイマーは1マシンサイクル(4クロック)単位で進みます。
MACHINE_CYCLE = 4


# @intent:data_structure タイマーのレジスタ値を観測するための不変ビュー。
@dataclass(frozen=True)
class TimerRegisters:
    div: int
    tima: int
    tma: int
    tac: int
    divider: int
    overflow_pending: bool


# @intent:responsibility ディバイダとプログラマブルカウンタを進め、オーバーフロー時にタイマー割り込みを要求します。
# @intent:rationale TIMAの加算はディバイダの特定ビットと許可ビットのANDの立ち下がりで判定します。
#                   これによりDIVリセットやTAC書き込みによる余分な加算も実機と同じになります。
class Timer:
    """
    DIV/TIMA/TMA/TACの4レジスタを持つタイマー。

    ディバイダは16bitのカウンタで、DIVはその上位8bitです。
    TIMAがオーバーフローすると値は一旦0x00になり、1マシンサイクル後にTMAが再ロードされて
    TIMER割り込みが要求されます。その間にTIMAへ書き込むと再ロードと割り込みは取り消されます。
    """
    def __init__(self, interrupts: InterruptController):
        self._interrupts = interrupts
        self._divider = 0
        self._tima = 0
        self._tma = 0
        self._tac = 0
        self._overflow_pending = False
        self._remainder = 0

    def reset(self) -> None:
        self._divider = 0
        self._tima = 0
        self._tma = 0
        self._tac = 0
        self._overflow_pending = False
        self._remainder = 0

    # @intent:responsibility 経過サイクル数だけタイマーを進めます。
    # @intent:pre-condition cyclesは0以上である必要があります。4未満の端数は次回に持ち越されます。
    def step(self, cycles: int) -> None:
        if cycles < 0:
            raise ValueError("cycles must be non-negative.")
        total = self._remainder + cycles
        machine_cycles, self._remainder = divmod(total, MACHINE_CYCLE)
        for _ in range(machine_cycles):
            self._tick()

    def _tick(self) -> None:
        if self._overflow_pending:
            self._overflow_pending = False
            self._tima = self._tma
            self._interrupts.request(InterruptSource.TIMER)
        before = self._counter_input()
        self._divider = (self._divider + MACHINE_CYCLE) & 0xFFFF
        if before and not self._counter_input():
            self._increment_tima()

    # @intent:responsibility カウンタ入力信号（選択されたディバイダビット AND 許可ビット）を返します。
    def _counter_input(self) -> bool:
        if not self._tac & TAC_ENABLE:
            return False
        bit = TIMER_PERIODS[self._tac & 0b11] // 2
        return (self._divider & bit) != 0

    def _increment_tima(self) -> None:
        if self._tima == 0xFF:
            self._tima = 0x00
            self._overflow_pending = True
        else:
            self._tima += 1

    # --- レジスタアクセス (0xFF04-0xFF07) ---

    def read_div(self) -> int:
        return (self._divider >> 8) & 0xFF

    # @intent:responsibility DIVへの書き込みは値に関係なくディバイダ全体を0にします。
    def write_div(self, value: int) -> None:
        before = self._counter_input()
        self._divider = 0
        if before:
            self._increment_tima()

    def read_tima(self) -> int:
        return self._tima

    def write_tima(self, value: int) -> None:
        # オーバーフロー保留中の書き込みは再ロードと割り込みを取り消す
        self._overflow_pending = False
        self._tima = value & 0xFF

    def read_tma(self) -> int:
        return self._tma

    def write_tma(self, value: int) -> None:
        self._tma = value & 0xFF

    def read_tac(self) -> int:
        return 0xF8 | self._tac

    def write_tac(self, value: int) -> None:
        before = self._counter_input()
        self._tac = value & 0x07
        if before and not self._counter_input():
            self._increment_tima()

    # @intent:responsibility デバッグ用にディバイダを含む全レジスタ値を返します。
    def get_registers(self) -> TimerRegisters:
        return TimerRegisters(
            div=self.read_div(),
            tima=self._tima,
            tma=self._tma,
            tac=self._tac,
            divider=self._divider,
            overflow_pending=self._overflow_pending,
        )


# @intent:responsibility CPUから報告されたサイクル数をタイマーに供給し、経過サイクル数を累積します。
class Clock:
    """
    サイクル数の累積器。テストハーネスやデバッガが経過時間を問い合わせるために使用します。
    """
    def __init__(self, timer: Timer):
        self._timer = timer
        self._steps = 0

    def step(self, cycles: int) -> None:
        self._timer.step(cycles)
        self._steps += cycles

    # @intent:responsibility タイマーを進めずにサイクル数のみ累積します。STOP中に使用します。
    def idle(self, cycles: int) -> None:
        self._steps += cycles

    def get_step(self) -> int:
        return self._steps

    def clear(self) -> None:
        self._steps = 0

    def reset(self) -> None:
        self._steps = 0
        self._timer.reset()
