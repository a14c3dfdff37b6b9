# tests/devices/test_joypad.py
"""
dmg_core_tracer.devices.joypadモジュールの単体テスト。
"""
import pytest

from dmg_core_tracer.devices.interrupt import InterruptController, InterruptSource
from dmg_core_tracer.devices.joypad import Joypad, Key

# @intent:test_suite 行選択とアクティブローのキー状態、割り込み要求を検証します。

class TestJoypad:
    @pytest.fixture
    def setup_joypad(self):
        interrupts = InterruptController()
        return Joypad(interrupts), interrupts

    # @intent:test_case_idle 何も押されていない場合は下位4ビットが全て1であることを検証します。
    def test_no_keys_pressed(self, setup_joypad):
        joypad, _ = setup_joypad
        assert joypad.read() == 0xFF
        joypad.write(0x00)
        assert joypad.read() == 0xCF

    # @intent:test_case_rows 選択された行のキーのみが0として読めることを検証します。
    def test_row_selection(self, setup_joypad):
        joypad, _ = setup_joypad
        joypad.press(Key.START)
        joypad.press(Key.LEFT)

        joypad.write(0x10) # ボタン行を選択
        assert joypad.read() == 0xD7
        joypad.write(0x20) # 方向キー行を選択
        assert joypad.read() == 0xED
        joypad.write(0x00) # 両方
        assert joypad.read() == 0xC5

    # @intent:test_case_interrupt 押下と解放でJOYPAD割り込みが要求されることを検証します。
    def test_press_requests_interrupt(self, setup_joypad):
        joypad, interrupts = setup_joypad
        joypad.press(Key.A)
        assert interrupts.request_mask == InterruptSource.JOYPAD.bit
        assert joypad.is_pressed(Key.A)
        interrupts.acknowledge(InterruptSource.JOYPAD)
        joypad.release(Key.A)
        assert interrupts.request_mask == InterruptSource.JOYPAD.bit
        assert not joypad.is_pressed(Key.A)
