# dmg_core_tracer/system/machine.py
"""
エミュレータコンテキスト

割り込みコントローラ、タイマー、クロック、ジョイパッド、MMU、CPUを1つのコンテキストに束ね、
ホスト（ドライバ、デバッガ、テストハーネス）向けの操作を提供します。
インスタンス間で状態は共有されないため、複数のマシンを同一プロセスで独立に動かせます。
"""
from pathlib import Path
from typing import Optional, Union
import logging

from dmg_core_tracer.arch.lr35902.cpu import Lr35902Cpu
from dmg_core_tracer.arch.lr35902.state import Lr35902CpuState
from dmg_core_tracer.core.errors import InvalidParameterError
from dmg_core_tracer.core.snapshot import Snapshot
from dmg_core_tracer.devices.interrupt import InterruptController, InterruptSource
from dmg_core_tracer.devices.joypad import Joypad, Key
from dmg_core_tracer.devices.timer import Clock, Timer
from dmg_core_tracer.devices.io import IF
from dmg_core_tracer.loader.loader import RomImageLoader
from dmg_core_tracer.transport.mmu import Mmu

logger = logging.getLogger(__name__)

# @intent:constant ブートROM終了時のIFの値（VBLANK要求が残っている）。
POST_BOOT_IF = 0x01


# @intent:responsibility 1台分のマシン状態を所有し、ステップ実行・I/O・入力・リセットの入口を提供します。
class GameBoy:
    """
    エミュレータコンテキスト。
    reset()後のIFはブートROM終了時と同じくVBLANKの要求ビットが立った状態です。
    """
    def __init__(self):
        self.interrupts = InterruptController()
        self.timer = Timer(self.interrupts)
        self.clock = Clock(self.timer)
        self.joypad = Joypad(self.interrupts)
        self.mmu = Mmu(self.interrupts, self.timer, self.joypad)
        self.cpu = Lr35902Cpu(self.mmu, self.interrupts, self.clock)
        self._last_snapshot: Optional[Snapshot] = None
        self.reset()

    # @intent:responsibility 生のROMイメージをROM領域に配置します。
    # @intent:pre-condition dataは空でなく32KiB以下である必要があります。違反時はLoadErrorです。
    def load_image(self, data: bytes) -> None:
        self.mmu.load_rom(data)

    def load_image_file(self, path: Union[str, Path]) -> None:
        loader = RomImageLoader()
        loader.load_into(self.mmu, loader.load_file(path))

    # @intent:responsibility CPUを1ステップ進め、経過サイクル数とステータスを含むSnapshotを返します。
    def step(self) -> Snapshot:
        snapshot = self.cpu.step()
        self._last_snapshot = snapshot
        return snapshot

    # @intent:responsibility 最大max_stepsステップ実行します。フォルトが発生した時点で停止します。
    # @intent:return 最後に実行したステップのSnapshot。
    def run(self, max_steps: int) -> Snapshot:
        if max_steps <= 0:
            raise InvalidParameterError("max_steps must be a positive integer.")
        snapshot = None
        for _ in range(max_steps):
            snapshot = self.step()
            if snapshot.is_fault:
                break
        return snapshot

    def read_io(self, address: int) -> int:
        return self.mmu.read_io(address)

    def write_io(self, address: int, data: int) -> None:
        self.mmu.write_io(address, data)

    # @intent:responsibility 外部コンポーネント（LCD、シリアルなど）からの割り込み要求を受け付けます。
    def request_interrupt(self, source: InterruptSource) -> None:
        self.interrupts.request(source)

    def press_key(self, key: Key) -> None:
        self.joypad.press(key)

    def release_key(self, key: Key) -> None:
        self.joypad.release(key)

    # @intent:responsibility 全コンポーネントを電源投入時の状態に戻します。ROMの内容は保持されます。
    def reset(self) -> None:
        self.interrupts.reset()
        self.clock.reset()
        self.joypad.reset()
        self.mmu.reset()
        self.cpu.reset()
        self.interrupts.request_mask = POST_BOOT_IF
        self._last_snapshot = None
        logger.info("Machine reset")

    # --- デバッグ用の整形出力（状態は変更しません） ---

    def format_registers(self) -> str:
        s: Lr35902CpuState = self.cpu.get_state()
        return (f"AF={s.af:04X} BC={s.bc:04X} DE={s.de:04X} HL={s.hl:04X} "
                f"SP={s.sp:04X} PC={s.pc:04X}")

    def format_flags(self) -> str:
        flags = self.cpu.get_flag_state()
        return "".join(name if flags[name] else "-" for name in ("Z", "N", "H", "C"))

    def format_cycles(self) -> str:
        return f"cycles={self.clock.get_step()} DIV={self.timer.read_div():02X} IF={self.mmu.peek(IF):02X}"

    # @intent:responsibility 現在のPCにある命令を逆アセンブルした文字列を返します。
    def format_instruction(self) -> str:
        pc = self.cpu.get_state().pc
        address, hex_dump, mnemonic = self.cpu.disassemble(pc, 1)[0]
        return f"${address:04X}: {hex_dump:<8} {mnemonic}"

    @property
    def last_snapshot(self) -> Optional[Snapshot]:
        return self._last_snapshot
