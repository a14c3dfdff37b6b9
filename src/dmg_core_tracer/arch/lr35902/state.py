# dmg_core_tracer/arch/lr35902/state.py
"""
LR35902 CPU固有の状態定義。

このモジュールは、LR35902 CPUのレジスタ、フラグ、および実行状態を保持するデータ構造を定義します。
"""
from dataclasses import dataclass

from dmg_core_tracer.core.state import CpuState

# LR35902フラグビットマスク
# @intent:constant Fレジスタ内の各フラグビットの位置を定義します。下位4ビットは常に0です。
Z_FLAG = 0b10000000  # Zero (ゼロ)
N_FLAG = 0b01000000  # Subtract (減算)
H_FLAG = 0b00100000  # Half Carry (ハーフキャリー)
C_FLAG = 0b00010000  # Carry (キャリー)
FLAG_MASK = 0xF0


# @intent:responsibility LR35902 CPUの全てのレジスタとフラグ、実行状態を保持します。
@dataclass
class Lr35902CpuState(CpuState):
    """
    LR35902 CPUのレジスタ状態を保持するデータクラス。
    CpuStateを拡張し、8本の8bitレジスタと実行状態（HALT/STOP）を含みます。
    """
    a: int = 0x00
    f: int = 0x00  # Flag register
    b: int = 0x00
    c: int = 0x00
    d: int = 0x00
    e: int = 0x00
    h: int = 0x00
    l: int = 0x00

    halted: bool = False  # HALT: 割り込みが来るまで停止
    stopped: bool = False  # STOP: ジョイパッド入力が来るまで停止

    # @intent:accessor Fレジスタの各フラグビットにアクセスするためのプロパティを提供します。
    # @intent:rationale フラグはこれらのプロパティを通じてのみ変更され、下位ニブルは常に0に保たれます。

    @property
    def flag_z(self) -> bool:
        return (self.f & Z_FLAG) != 0

    @flag_z.setter
    def flag_z(self, value: bool) -> None:
        if value:
            self.f = (self.f | Z_FLAG) & FLAG_MASK
        else:
            self.f = self.f & ~Z_FLAG & FLAG_MASK

    @property
    def flag_n(self) -> bool:
        return (self.f & N_FLAG) != 0

    @flag_n.setter
    def flag_n(self, value: bool) -> None:
        if value:
            self.f = (self.f | N_FLAG) & FLAG_MASK
        else:
            self.f = self.f & ~N_FLAG & FLAG_MASK

    @property
    def flag_h(self) -> bool:
        return (self.f & H_FLAG) != 0

    @flag_h.setter
    def flag_h(self, value: bool) -> None:
        if value:
            self.f = (self.f | H_FLAG) & FLAG_MASK
        else:
            self.f = self.f & ~H_FLAG & FLAG_MASK

    @property
    def flag_c(self) -> bool:
        return (self.f & C_FLAG) != 0

    @flag_c.setter
    def flag_c(self, value: bool) -> None:
        if value:
            self.f = (self.f | C_FLAG) & FLAG_MASK
        else:
            self.f = self.f & ~C_FLAG & FLAG_MASK

    # @intent:utility_function 4つのフラグを一度に設定します。Noneのフラグは変更しません。
    def set_flags(self, z=None, n=None, h=None, c=None) -> None:
        if z is not None:
            self.flag_z = z
        if n is not None:
            self.flag_n = n
        if h is not None:
            self.flag_h = h
        if c is not None:
            self.flag_c = c

    # 16-bit register pairs (上位バイトが先頭のレジスタ)
    @property
    def af(self) -> int:
        return (self.a << 8) | self.f

    @af.setter
    def af(self, value: int) -> None:
        self.a = (value >> 8) & 0xFF
        self.f = value & FLAG_MASK

    @property
    def bc(self) -> int:
        return (self.b << 8) | self.c

    @bc.setter
    def bc(self, value: int) -> None:
        self.b = (value >> 8) & 0xFF
        self.c = value & 0xFF

    @property
    def de(self) -> int:
        return (self.d << 8) | self.e

    @de.setter
    def de(self, value: int) -> None:
        self.d = (value >> 8) & 0xFF
        self.e = value & 0xFF

    @property
    def hl(self) -> int:
        return (self.h << 8) | self.l

    @hl.setter
    def hl(self, value: int) -> None:
        self.h = (value >> 8) & 0xFF
        self.l = value & 0xFF
