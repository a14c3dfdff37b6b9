# tests/arch/lr35902/test_instructions_load.py
import pytest
from dmg_core_tracer.transport.bus import Bus, RAM
from dmg_core_tracer.devices.interrupt import InterruptController
from dmg_core_tracer.devices.timer import Timer, Clock
from dmg_core_tracer.arch.lr35902.cpu import Lr35902Cpu

# @intent:test_suite データ転送命令（LD/LDH/PUSH/POP）の振る舞いを検証します。

class TestLoadInstructions:
    @pytest.fixture
    def setup_cpu(self):
        bus = Bus()
        bus.register_device(0x0000, 0xFFFF, RAM(0x10000))
        interrupts = InterruptController()
        cpu = Lr35902Cpu(bus, interrupts, Clock(Timer(interrupts)))
        return cpu, bus

    @staticmethod
    def _load(bus, address, code):
        for offset, value in enumerate(code):
            bus.write(address + offset, value)

    # @intent:test_case_ld_r_d8 LD A,d8で即値が読み込まれ、8サイクル消費することを検証します。
    def test_ld_r_d8(self, setup_cpu):
        cpu, bus = setup_cpu
        self._load(bus, 0x0000, [0x3E, 0x05])
        snapshot = cpu.step()
        assert cpu.get_state().a == 0x05
        assert cpu.get_state().pc == 0x0002
        assert snapshot.cycles == 8

    # @intent:test_case_ld_r_r レジスタ間転送と(HL)経由の転送を検証します。
    def test_ld_r_r_and_hl(self, setup_cpu):
        cpu, bus = setup_cpu
        # LD HL,$C000 / LD (HL),B / LD A,(HL) / LD D,A
        self._load(bus, 0x0000, [0x21, 0x00, 0xC0, 0x70, 0x7E, 0x57])
        cpu.get_state().b = 0x99
        cpu.step()
        cpu.step()
        assert bus.read(0xC000) == 0x99
        cpu.step()
        assert cpu.get_state().a == 0x99
        cpu.step()
        assert cpu.get_state().d == 0x99

    # @intent:test_case_hl_inc (HL+)/(HL-)がアクセス後にHLを増減させることを検証します。
    def test_ld_hl_increment_decrement(self, setup_cpu):
        cpu, bus = setup_cpu
        # LD HL,$C000 / LD (HL+),A / LD (HL-),A
        self._load(bus, 0x0000, [0x21, 0x00, 0xC0, 0x22, 0x32])
        cpu.get_state().a = 0x42
        cpu.step()
        cpu.step()
        assert cpu.get_state().hl == 0xC001
        cpu.step()
        assert cpu.get_state().hl == 0xC000
        assert bus.read(0xC000) == 0x42
        assert bus.read(0xC001) == 0x42

    # @intent:test_case_ldh LDHが0xFF00を基準としたアドレスにアクセスすることを検証します。
    def test_ldh(self, setup_cpu):
        cpu, bus = setup_cpu
        # LDH ($80),A / LD C,$81 / LD (C),A / LDH A,($82)
        self._load(bus, 0x0000, [0xE0, 0x80, 0x0E, 0x81, 0xE2, 0xF0, 0x82])
        bus.write(0xFF82, 0x77)
        cpu.get_state().a = 0x12
        for _ in range(4):
            cpu.step()
        assert bus.read(0xFF80) == 0x12
        assert bus.read(0xFF81) == 0x12
        assert cpu.get_state().a == 0x77

    # @intent:test_case_a16_sp LD (a16),SPがリトルエンディアンで書き込むことを検証します。
    def test_ld_a16_sp(self, setup_cpu):
        cpu, bus = setup_cpu
        self._load(bus, 0x0000, [0x08, 0x00, 0xC1])
        snapshot = cpu.step()
        assert bus.read(0xC100) == 0xFE
        assert bus.read(0xC101) == 0xFF
        assert snapshot.cycles == 20

    # @intent:test_case_push_pop PUSHは上位バイトを高位アドレスに積み、POPで元の値が戻ることを検証します。
    def test_push_pop(self, setup_cpu):
        cpu, bus = setup_cpu
        # LD BC,$1234 / PUSH BC / POP DE
        self._load(bus, 0x0000, [0x01, 0x34, 0x12, 0xC5, 0xD1])
        cpu.step()
        snapshot = cpu.step()
        state = cpu.get_state()
        assert state.sp == 0xFFFC
        assert bus.read(0xFFFD) == 0x12
        assert bus.read(0xFFFC) == 0x34
        assert snapshot.cycles == 16
        cpu.step()
        assert cpu.get_state().de == 0x1234
        assert cpu.get_state().sp == 0xFFFE

    # @intent:test_case_pop_af POP AFではFの下位ニブルが0になることを検証します。
    def test_pop_af_masks_flags(self, setup_cpu):
        cpu, bus = setup_cpu
        cpu.get_state().sp = 0xC000
        bus.write(0xC000, 0xFF)
        bus.write(0xC001, 0x12)
        self._load(bus, 0x0000, [0xF1])
        cpu.step()
        assert cpu.get_state().a == 0x12
        assert cpu.get_state().f == 0xF0

    # @intent:test_case_hl_sp LD HL,SP+r8とLD SP,HLを検証します。
    def test_ld_hl_sp_offset(self, setup_cpu):
        cpu, bus = setup_cpu
        # LD HL,SP-2 / LD SP,HL
        self._load(bus, 0x0000, [0xF8, 0xFE, 0xF9])
        cpu.step()
        assert cpu.get_state().hl == 0xFFFC
        assert not cpu.get_state().flag_z
        cpu.step()
        assert cpu.get_state().sp == 0xFFFC
