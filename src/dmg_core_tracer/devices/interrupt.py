# dmg_core_tracer/devices/interrupt.py
"""
割り込みコントローラ

このモジュールは、5つの割り込み要因の許可マスク(IE)・要求マスク(IF)と、
EI命令による1命令遅延を伴うマスター許可フラグ(IME)を管理する責務を負います。
"""
from enum import IntEnum
from typing import Optional
import logging

logger = logging.getLogger(__name__)

# @intent:constant 割り込みディスパッチに要するクロックサイクル数。
INTERRUPT_DISPATCH_CYCLES = 20

# @intent:constant 5要因分の有効ビット。
INTERRUPT_MASK = 0x1F


# @intent:responsibility 割り込み要因と優先順位を定義します。番号が小さいほど優先されます。
class InterruptSource(IntEnum):
    VBLANK = 0
    LCD_STAT = 1
    TIMER = 2
    SERIAL = 3
    JOYPAD = 4

    # @intent:responsibility 要因ごとに固定された割り込みベクタアドレスを返します。
    @property
    def vector(self) -> int:
        return 0x40 + 8 * int(self)

    @property
    def bit(self) -> int:
        return 1 << int(self)


# @intent:responsibility 割り込みの許可・要求・マスター許可状態を保持し、ディスパッチ対象を決定します。
# @intent:rationale EIの遅延はカウンタで表現し、CPUが命令完了ごとにtick()を呼ぶことで経過させます。
class InterruptController:
    """
    割り込みコントローラ。

    EIによる許可は「次の命令が完了した後」に有効になります。CPUは命令を1つ実行するたびに
    tick()を呼び出し、遅延カウンタが0になった時点でIMEが立ちます。
    DIは即座に無効化し、保留中のEIも取り消します。
    """
    def __init__(self):
        self._enable_mask = 0
        self._request_mask = 0
        self._master_enable = False
        self._enable_delay = 0

    # @intent:responsibility 全状態を電源投入時の値に戻します。
    def reset(self) -> None:
        self._enable_mask = 0
        self._request_mask = 0
        self._master_enable = False
        self._enable_delay = 0

    @property
    def enable_mask(self) -> int:
        return self._enable_mask

    # IEは8ビットすべてを保持します。判定に使うのは下位5ビットのみです。
    @enable_mask.setter
    def enable_mask(self, value: int) -> None:
        self._enable_mask = value & 0xFF

    @property
    def request_mask(self) -> int:
        return self._request_mask

    @request_mask.setter
    def request_mask(self, value: int) -> None:
        self._request_mask = value & INTERRUPT_MASK

    @property
    def master_enable(self) -> bool:
        return self._master_enable

    # @intent:responsibility EI命令の遅延が保留中かどうかを返します。
    @property
    def enable_pending(self) -> bool:
        return self._enable_delay > 0

    # @intent:responsibility 指定された要因の要求ビットを立てます。タイマーやジョイパッドから呼ばれます。
    def request(self, source: InterruptSource) -> None:
        self._request_mask |= InterruptSource(source).bit

    # @intent:responsibility ディスパッチ済みの要因の要求ビットを下ろします。
    def acknowledge(self, source: InterruptSource) -> None:
        self._request_mask &= ~InterruptSource(source).bit & INTERRUPT_MASK

    # @intent:responsibility マスター許可フラグを設定します。
    # @intent:pre-condition delayed=TrueはEI命令専用です。
    def set_master_enable(self, enabled: bool, delayed: bool = False) -> None:
        """
        IMEを設定します。

        - enabled=True, delayed=True: EI。次の命令が完了した後に有効化されます。
        - enabled=True, delayed=False: RETI。即座に有効化されます。
        - enabled=False: DI。即座に無効化し、保留中のEIも取り消します。
        """
        if not enabled:
            self._master_enable = False
            self._enable_delay = 0
            return
        if delayed:
            # 2回のtick: EI自身の完了と、その次の命令の完了
            # 遅延中に繰り返されたEIは期限を延ばしません。
            if not self._master_enable and self._enable_delay == 0:
                self._enable_delay = 2
        else:
            self._master_enable = True
            self._enable_delay = 0

    # @intent:responsibility 命令1つの完了を通知し、EIの遅延を経過させます。
    def tick(self) -> None:
        if self._enable_delay > 0:
            self._enable_delay -= 1
            if self._enable_delay == 0:
                self._master_enable = True

    # @intent:responsibility 許可かつ要求されている要因のうち、最優先のものを返します。
    # @intent:post-condition IMEが無効の場合は常にNoneを返します。
    def pending(self) -> Optional[InterruptSource]:
        if not self._master_enable:
            return None
        return self._highest(self._enable_mask & self._request_mask & INTERRUPT_MASK)

    # @intent:responsibility IMEに関係なく、許可かつ要求されている要因が存在するかを返します。HALT解除判定用。
    def has_requested(self) -> bool:
        return (self._enable_mask & self._request_mask & INTERRUPT_MASK) != 0

    @staticmethod
    def _highest(mask: int) -> Optional[InterruptSource]:
        for source in InterruptSource:
            if mask & source.bit:
                return source
        return None

    # IF (0xFF0F) / IE (0xFFFF) のレジスタビュー
    def read_if(self) -> int:
        return 0xE0 | self._request_mask

    def write_if(self, value: int) -> None:
        self.request_mask = value

    def read_ie(self) -> int:
        return self._enable_mask

    def write_ie(self, value: int) -> None:
        self.enable_mask = value
