"""
LR35902 ALU (算術論理演算ユニット) およびフラグ操作ユーティリティ。

演算結果に基づいた正確なフラグ（Z, N, H, C）の計算と更新を担当します。
各関数は演算結果を返し、フラグはstateに直接書き込みます。
"""
from dmg_core_tracer.arch.lr35902.state import Lr35902CpuState

# @intent:responsibility 8ビット加算（ADD/ADC）を行い、全フラグを更新します。
def add8(state: Lr35902CpuState, val1: int, val2: int, carry_in: int = 0) -> int:
    """ADD/ADC命令の演算。Hはビット3からの、Cはビット7からのキャリーです。"""
    result = val1 + val2 + carry_in
    res8 = result & 0xFF
    state.flag_z = res8 == 0
    state.flag_n = False
    state.flag_h = ((val1 & 0x0F) + (val2 & 0x0F) + carry_in) > 0x0F
    state.flag_c = result > 0xFF
    return res8

# @intent:responsibility 8ビット減算（SUB/SBC/CP）を行い、全フラグを更新します。
def sub8(state: Lr35902CpuState, val1: int, val2: int, borrow_in: int = 0) -> int:
    """SUB/SBC/CP命令の演算。Hはビット4からの、Cは最上位からのボローです。"""
    result = val1 - val2 - borrow_in
    res8 = result & 0xFF
    state.flag_z = res8 == 0
    state.flag_n = True
    state.flag_h = ((val2 & 0x0F) + borrow_in) > (val1 & 0x0F)
    state.flag_c = result < 0
    return res8

# @intent:responsibility 8ビット論理演算の結果に基づいてフラグを更新します。
def logic8(state: Lr35902CpuState, result: int, h_flag: bool = False) -> int:
    """AND/OR/XOR命令のフラグを更新します。ANDのみHが立ちます。"""
    res8 = result & 0xFF
    state.set_flags(z=res8 == 0, n=False, h=h_flag, c=False)
    return res8

# @intent:responsibility インクリメント命令のフラグを更新します（Cフラグは変化しません）。
def inc8(state: Lr35902CpuState, val: int) -> int:
    res8 = (val + 1) & 0xFF
    state.flag_z = res8 == 0
    state.flag_n = False
    state.flag_h = (val & 0x0F) == 0x0F
    return res8

# @intent:responsibility デクリメント命令のフラグを更新します（Cフラグは変化しません）。
def dec8(state: Lr35902CpuState, val: int) -> int:
    res8 = (val - 1) & 0xFF
    state.flag_z = res8 == 0
    state.flag_n = True
    state.flag_h = (val & 0x0F) == 0x00
    return res8

# @intent:responsibility 16ビット加算（ADD HL,rr）を行い、N/H/Cを更新します。
# @intent:rationale Zフラグは影響を受けないことに注意してください。
def add16(state: Lr35902CpuState, val1: int, val2: int) -> int:
    """ADD HL,rr命令の演算。Hはビット11からの、Cはビット15からのキャリーです。"""
    result = val1 + val2
    state.flag_n = False
    state.flag_h = ((val1 & 0x0FFF) + (val2 & 0x0FFF)) > 0x0FFF
    state.flag_c = result > 0xFFFF
    return result & 0xFFFF

# @intent:responsibility SPに符号付き8ビット値を加算します（ADD SP,e8 / LD HL,SP+e8）。
# @intent:rationale H/Cはオペランドを符号なしとして下位ニブル・下位バイトの加算から求めます。Z/Nはクリアされます。
def add_sp_offset(state: Lr35902CpuState, sp: int, offset: int) -> int:
    offset &= 0xFF
    state.set_flags(
        z=False,
        n=False,
        h=((sp & 0x0F) + (offset & 0x0F)) > 0x0F,
        c=((sp & 0xFF) + offset) > 0xFF,
    )
    signed = offset - 0x100 if offset & 0x80 else offset
    return (sp + signed) & 0xFFFF

# @intent:responsibility 直前の演算結果をBCDに補正します（DAA）。
def daa(state: Lr35902CpuState, value: int) -> int:
    """
    Nフラグ（直前が減算か）に応じて0x06/0x60を加減算します。
    Hはクリアされ、Zは補正後の値から設定されます。
    Cは補正が0xFFを超えた場合にのみ立てられ、この命令でクリアされることはありません。
    """
    result = value
    if state.flag_n:
        if state.flag_h:
            result = (result - 0x06) & 0xFF
        if state.flag_c:
            result = (result - 0x60) & 0xFFFF
    else:
        if state.flag_h or (result & 0x0F) > 0x09:
            result += 0x06
        if state.flag_c or result > 0x9F:
            result += 0x60
    state.flag_h = False
    state.flag_z = (result & 0xFF) == 0
    if result >= 0x100:
        state.flag_c = True
    return result & 0xFF

# --- ローテート・シフト ---
# @intent:rationale 押し出されたビットは常にCへ入り、N/Hはクリアされます。
#                   Zの扱いは命令ごとに異なるため、set_zeroで呼び出し側が選択します。

def _shift_flags(state: Lr35902CpuState, result: int, carry: bool, set_zero: bool) -> int:
    res8 = result & 0xFF
    state.set_flags(z=set_zero and res8 == 0, n=False, h=False, c=carry)
    return res8

def rlc(state: Lr35902CpuState, val: int, set_zero: bool = True) -> int:
    carry = (val & 0x80) != 0
    return _shift_flags(state, (val << 1) | (val >> 7), carry, set_zero)

def rrc(state: Lr35902CpuState, val: int, set_zero: bool = True) -> int:
    carry = (val & 0x01) != 0
    return _shift_flags(state, (val >> 1) | ((val & 0x01) << 7), carry, set_zero)

def rl(state: Lr35902CpuState, val: int, set_zero: bool = True) -> int:
    carry = (val & 0x80) != 0
    return _shift_flags(state, (val << 1) | int(state.flag_c), carry, set_zero)

def rr(state: Lr35902CpuState, val: int, set_zero: bool = True) -> int:
    carry = (val & 0x01) != 0
    return _shift_flags(state, (val >> 1) | (int(state.flag_c) << 7), carry, set_zero)

def sla(state: Lr35902CpuState, val: int) -> int:
    return _shift_flags(state, val << 1, (val & 0x80) != 0, True)

def sra(state: Lr35902CpuState, val: int) -> int:
    return _shift_flags(state, (val >> 1) | (val & 0x80), (val & 0x01) != 0, True)

def srl(state: Lr35902CpuState, val: int) -> int:
    return _shift_flags(state, val >> 1, (val & 0x01) != 0, True)

# @intent:responsibility 上位・下位ニブルを入れ替えます。N/H/Cはクリアされます。
def swap(state: Lr35902CpuState, val: int) -> int:
    res8 = ((val << 4) | (val >> 4)) & 0xFF
    state.set_flags(z=res8 == 0, n=False, h=False, c=False)
    return res8

# @intent:responsibility 指定ビットをテストします。Zはビットが0のとき立ち、Hは常にセット、Cは変化しません。
def check_bit(state: Lr35902CpuState, val: int, bit: int) -> None:
    state.set_flags(z=(val & (1 << bit)) == 0, n=False, h=True)
