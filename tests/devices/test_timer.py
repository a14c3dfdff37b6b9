# tests/devices/test_timer.py
"""
dmg_core_tracer.devices.timerモジュールの単体テスト。
"""
import pytest

from dmg_core_tracer.devices.interrupt import InterruptController, InterruptSource
from dmg_core_tracer.devices.timer import Timer, Clock

# @intent:test_suite ディバイダ、TIMAの加算周期、オーバーフロー時の再ロードの振る舞いを検証します。

class TestTimer:
    @pytest.fixture
    def setup_timer(self):
        interrupts = InterruptController()
        timer = Timer(interrupts)
        return timer, interrupts

    # @intent:test_case_div DIVは256サイクルごとに1つ増えることを検証します。
    def test_div_increments_every_256_cycles(self, setup_timer):
        timer, _ = setup_timer
        timer.step(255)
        assert timer.read_div() == 0
        timer.step(1)
        assert timer.read_div() == 1
        timer.step(256 * 0xFF)
        assert timer.read_div() == 0x00 # 折り返し

    # @intent:test_case_disabled 許可ビットが0の間はTIMAが変化しないことを検証します。
    def test_tima_disabled(self, setup_timer):
        timer, _ = setup_timer
        timer.write_tac(0b011)
        timer.step(4096)
        assert timer.read_tima() == 0

    # @intent:test_case_period 周期1024で4096サイクル進めるとTIMAがちょうど4増えることを検証します。
    def test_tima_increments_at_selected_period(self, setup_timer):
        timer, _ = setup_timer
        timer.write_tac(0b100)
        timer.step(4096)
        assert timer.read_tima() == 4

    # @intent:test_case_period 各周期設定で加算回数が正しいことを検証します。
    @pytest.mark.parametrize("tac, period", [(0b101, 16), (0b110, 64), (0b111, 256)])
    def test_tima_periods(self, setup_timer, tac, period):
        timer, _ = setup_timer
        timer.write_tac(tac)
        timer.step(period * 10)
        assert timer.read_tima() == 10

    # @intent:test_case_overflow オーバーフロー後1マシンサイクルでTMAが再ロードされ、割り込みが要求されることを検証します。
    def test_overflow_reload(self, setup_timer):
        timer, interrupts = setup_timer
        timer.write_tima(0xFF)
        timer.write_tma(0xAB)
        timer.write_tac(0b101)

        timer.step(16)
        regs = timer.get_registers()
        assert regs.tima == 0x00
        assert regs.overflow_pending
        assert not interrupts.request_mask & InterruptSource.TIMER.bit

        timer.step(4)
        assert timer.read_tima() == 0xAB
        assert interrupts.request_mask & InterruptSource.TIMER.bit

    # @intent:test_case_overflow 再ロード保留中のTIMA書き込みで再ロードと割り込みが取り消されることを検証します。
    def test_tima_write_cancels_reload(self, setup_timer):
        timer, interrupts = setup_timer
        timer.write_tima(0xFF)
        timer.write_tma(0xAB)
        timer.write_tac(0b101)
        timer.step(16)
        timer.write_tima(0x10)
        timer.step(4)
        assert timer.read_tima() == 0x10
        assert interrupts.request_mask == 0

    # @intent:test_case_div_reset DIVへの書き込みで選択ビットが立ち下がるとTIMAが1つ増えることを検証します。
    def test_div_write_falling_edge(self, setup_timer):
        timer, _ = setup_timer
        timer.write_tac(0b101) # ディバイダのビット3を監視
        timer.step(8)
        assert timer.read_tima() == 0
        timer.write_div(0x55)
        assert timer.read_tima() == 1
        assert timer.get_registers().divider == 0

    # @intent:test_case_remainder 4未満の端数は次のstepに持ち越されることを検証します。
    def test_step_carries_remainder(self, setup_timer):
        timer, _ = setup_timer
        timer.step(2)
        timer.step(2)
        assert timer.get_registers().divider == 4

    # @intent:test_case_invalid 負のサイクル数はValueErrorになることを検証します。
    def test_negative_cycles(self, setup_timer):
        timer, _ = setup_timer
        with pytest.raises(ValueError):
            timer.step(-4)

    # @intent:test_case_tac TACは上位5ビットが1で読めることを検証します。
    def test_tac_read(self, setup_timer):
        timer, _ = setup_timer
        timer.write_tac(0xFF)
        assert timer.read_tac() == 0xFF
        assert timer.get_registers().tac == 0x07


class TestClock:
    # @intent:test_case_clock stepはタイマーを進め、idleはサイクル数のみを累積することを検証します。
    def test_step_and_idle(self):
        timer = Timer(InterruptController())
        clock = Clock(timer)
        clock.step(256)
        clock.idle(256)
        assert clock.get_step() == 512
        assert timer.read_div() == 1
        clock.clear()
        assert clock.get_step() == 0
        clock.reset()
        assert timer.read_div() == 0
