# dmg_core_tracer/devices/joypad.py
"""
ジョイパッド入力

キー状態を2行（方向キー行・ボタン行）のビットマスクとして保持し、
0xFF00の選択ビットに応じた行を返します。
"""
from enum import Enum

from dmg_core_tracer.devices.interrupt import InterruptController, InterruptSource

# @intent:constant 0xFF00の行選択ビット。0で選択（アクティブロー）。
SELECT_DIRECTIONS = 0x10
SELECT_BUTTONS = 0x20
SELECT_MASK = 0x30


# @intent:responsibility キーとその行・ビット位置を定義します。
class Key(Enum):
    RIGHT = ("directions", 0x01)
    LEFT = ("directions", 0x02)
    UP = ("directions", 0x04)
    DOWN = ("directions", 0x08)
    A = ("buttons", 0x01)
    B = ("buttons", 0x02)
    SELECT = ("buttons", 0x04)
    START = ("buttons", 0x08)

    @property
    def row(self) -> str:
        return self.value[0]

    @property
    def bit(self) -> int:
        return self.value[1]


# @intent:responsibility キーの押下状態を保持し、選択された行のビットマスクを提供します。
# @intent:rationale 押下・解放のたびにJOYPAD割り込みを要求します。STOPからの復帰にも使われます。
class Joypad:
    def __init__(self, interrupts: InterruptController):
        self._interrupts = interrupts
        self._select = SELECT_MASK
        self._pressed = {"directions": 0, "buttons": 0}

    def reset(self) -> None:
        self._select = SELECT_MASK
        self._pressed = {"directions": 0, "buttons": 0}

    def press(self, key: Key) -> None:
        self._pressed[key.row] |= key.bit
        self._interrupts.request(InterruptSource.JOYPAD)

    def release(self, key: Key) -> None:
        self._pressed[key.row] &= ~key.bit
        self._interrupts.request(InterruptSource.JOYPAD)

    def is_pressed(self, key: Key) -> bool:
        return (self._pressed[key.row] & key.bit) != 0

    # @intent:responsibility 0xFF00への書き込み。行選択ビット(4-5)のみを保持します。
    def write(self, value: int) -> None:
        self._select = value & SELECT_MASK

    # @intent:responsibility 0xFF00の読み出し。押されているキーのビットが0になります。
    # @intent:post-condition 両方の行が選択されている場合は2行のANDを返します。
    def read(self) -> int:
        nibble = 0x0F
        if not self._select & SELECT_DIRECTIONS:
            nibble &= ~self._pressed["directions"]
        if not self._select & SELECT_BUTTONS:
            nibble &= ~self._pressed["buttons"]
        return 0xC0 | self._select | (nibble & 0x0F)
