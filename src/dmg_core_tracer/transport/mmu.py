# dmg_core_tracer/transport/mmu.py
"""
メモリ管理ユニット (MMU)

64KiBのアドレス空間を固定の重複しない領域に分割し、共通バスに登録します。
I/Oウィンドウの副作用はdevices.ioのIoRegistersに委譲されます。
"""
from typing import Optional
import logging

from dmg_core_tracer.core.errors import LoadError
from dmg_core_tracer.transport.bus import Bus, Device, RAM, ROM, OPEN_BUS_VALUE
from dmg_core_tracer.devices.interrupt import InterruptController
from dmg_core_tracer.devices.timer import Timer
from dmg_core_tracer.devices.joypad import Joypad
from dmg_core_tracer.devices.io import IoRegisters, InterruptEnableRegister, IO_BASE, IO_SIZE, DMA, IE

logger = logging.getLogger(__name__)

# @intent:constant 各領域の先頭アドレスとサイズ。
ROM_START, ROM_SIZE = 0x0000, 0x8000
VRAM_START, VRAM_SIZE = 0x8000, 0x2000
ERAM_START, ERAM_SIZE = 0xA000, 0x2000
WRAM_START, WRAM_SIZE = 0xC000, 0x2000
ECHO_START, ECHO_END = 0xE000, 0xFDFF
OAM_START, OAM_SIZE = 0xFE00, 0xA0
HRAM_START, HRAM_SIZE = 0xFF80, 0x7F

# @intent:constant OAM DMAで転送されるバイト数。
DMA_LENGTH = 0xA0


# @intent:responsibility 0xE000-0xFDFFからワークRAMの先頭7.5KiBを参照するミラーデバイス。
class EchoRam(Device):
    def __init__(self, target: RAM):
        self._target = target

    def read(self, address: int) -> int:
        return self._target.read(address)

    def write(self, address: int, data: int) -> None:
        self._target.write(address, data)


# @intent:responsibility 固定のメモリマップを構築し、ROMイメージのロードとI/Oアクセスを提供します。
class Mmu(Bus):
    """
    メモリマップ:

    - 0x0000-0x7FFF: カートリッジROM (32KiB、バンク切り替えなし)
    - 0x8000-0x9FFF: VRAM
    - 0xA000-0xBFFF: 外部RAM
    - 0xC000-0xDFFF: ワークRAM
    - 0xE000-0xFDFF: ワークRAMのエコー
    - 0xFE00-0xFE9F: OAM
    - 0xFEA0-0xFEFF: 使用不可（未マップ）
    - 0xFF00-0xFF7F: I/Oレジスタ
    - 0xFF80-0xFFFE: HRAM
    - 0xFFFF:        割り込み許可レジスタ
    """
    def __init__(self, interrupts: InterruptController, timer: Timer, joypad: Joypad):
        super().__init__()
        self.rom = ROM(ROM_SIZE)
        self.vram = RAM(VRAM_SIZE)
        self.eram = RAM(ERAM_SIZE)
        self.wram = RAM(WRAM_SIZE)
        self.oam = RAM(OAM_SIZE)
        self.hram = RAM(HRAM_SIZE)
        self.io = IoRegisters(interrupts, timer, joypad)
        self._dma_source = 0x00

        self.register_device(ROM_START, ROM_START + ROM_SIZE - 1, self.rom)
        self.register_device(VRAM_START, VRAM_START + VRAM_SIZE - 1, self.vram)
        self.register_device(ERAM_START, ERAM_START + ERAM_SIZE - 1, self.eram)
        self.register_device(WRAM_START, WRAM_START + WRAM_SIZE - 1, self.wram)
        self.register_device(ECHO_START, ECHO_END, EchoRam(self.wram))
        self.register_device(OAM_START, OAM_START + OAM_SIZE - 1, self.oam)
        self.register_device(IO_BASE, IO_BASE + IO_SIZE - 1, self.io)
        self.register_device(HRAM_START, HRAM_START + HRAM_SIZE - 1, self.hram)
        self.register_device(IE, IE, InterruptEnableRegister(interrupts))

        self.io.register_handler(DMA, self._read_dma, self._start_dma)

    # @intent:responsibility 生のROMイメージをアドレス0から配置します。
    # @intent:pre-condition dataは空でなく、32KiB以下である必要があります。
    def load_rom(self, data: Optional[bytes]) -> None:
        if not data:
            raise LoadError("ROM image is empty.")
        if len(data) > ROM_SIZE:
            raise LoadError(f"ROM image of {len(data)} bytes exceeds the {ROM_SIZE} byte ROM region.")
        self.rom.clear()
        for offset, value in enumerate(data):
            self.load(ROM_START + offset, value)
        logger.info("Loaded %d byte ROM image", len(data))

    # @intent:responsibility RAM領域と外部コンポーネントのI/Oレジスタを初期化します。ROMの内容は保持されます。
    def reset(self) -> None:
        for ram in (self.vram, self.eram, self.wram, self.oam, self.hram):
            ram.clear()
        self.io.reset()
        self._dma_source = 0x00
        self.get_and_clear_activity_log()

    # @intent:responsibility I/Oウィンドウ(0xFF00-0xFF7F)と0xFFFFに限定した読み出しを行います。
    def read_io(self, address: int) -> int:
        if not self._is_io_address(address):
            return OPEN_BUS_VALUE
        return super().read_io(address)

    def write_io(self, address: int, data: int) -> None:
        if not self._is_io_address(address):
            logger.debug("Dropped I/O write to non-I/O address %#06x", address)
            return
        super().write_io(address, data)

    @staticmethod
    def _is_io_address(address: int) -> bool:
        return IO_BASE <= address < IO_BASE + IO_SIZE or address == IE

    def _read_dma(self) -> int:
        return self._dma_source

    # @intent:responsibility OAM DMA。転送元 value<<8 から160バイトをOAMへ即座にコピーします。
    def _start_dma(self, value: int) -> None:
        self._dma_source = value & 0xFF
        source = self._dma_source << 8
        for offset in range(DMA_LENGTH):
            self.oam.write(offset, self.peek(source + offset))
