# tests/loader/test_loader.py
"""
dmg_core_tracer.loader.loaderモジュールの単体テスト。
"""
import pytest

from dmg_core_tracer.core.errors import LoadError
from dmg_core_tracer.devices.interrupt import InterruptController
from dmg_core_tracer.devices.joypad import Joypad
from dmg_core_tracer.devices.timer import Timer
from dmg_core_tracer.loader.loader import RomImageLoader, SymbolFileLoader
from dmg_core_tracer.transport.mmu import Mmu

# @intent:test_suite ROMイメージとシンボルファイルの読み込みを検証します。

class TestRomImageLoader:
    @pytest.fixture
    def mmu(self):
        interrupts = InterruptController()
        return Mmu(interrupts, Timer(interrupts), Joypad(interrupts))

    # @intent:test_case_load ファイルの内容がそのまま返され、ROM領域に配置されることを検証します。
    def test_load_file_into_mmu(self, tmp_path, mmu):
        rom = tmp_path / "game.gb"
        rom.write_bytes(bytes([0x00, 0xC3, 0x50, 0x01]))
        loader = RomImageLoader()
        data = loader.load_file(rom)
        assert data == bytes([0x00, 0xC3, 0x50, 0x01])
        loader.load_into(mmu, data)
        assert mmu.read(0x0001) == 0xC3
        assert mmu.read(0x0003) == 0x01

    # @intent:test_case_missing 存在しないファイルはLoadErrorになることを検証します。
    def test_missing_file(self, tmp_path):
        with pytest.raises(LoadError, match="Could not read ROM image"):
            RomImageLoader().load_file(tmp_path / "missing.gb")

    # @intent:test_case_oversize 32KiBを超えるイメージの配置はLoadErrorになることを検証します。
    def test_oversized_image(self, tmp_path, mmu):
        rom = tmp_path / "big.gb"
        rom.write_bytes(bytes(0x8000 + 1))
        loader = RomImageLoader()
        with pytest.raises(LoadError):
            loader.load_into(mmu, loader.load_file(rom))


class TestSymbolFileLoader:
    # @intent:test_case_parse "BB:AAAA label"形式の行とコメントを解析できることを検証します。
    def test_parse_symbols(self, tmp_path):
        sym = tmp_path / "game.sym"
        sym.write_text(
            "; generated symbols\n"
            "00:0150 Main\n"
            "00:0040 VBlankHandler ; interrupt\n"
            "\n"
            "01:4000 BankedData\n",
            encoding="utf-8",
        )
        symbols = SymbolFileLoader().load_file(sym)
        assert symbols == {"Main": 0x0150, "VBlankHandler": 0x0040, "BankedData": 0x4000}

    # @intent:test_case_invalid 形式に合わない行は行番号付きのLoadErrorになることを検証します。
    def test_invalid_line(self, tmp_path):
        sym = tmp_path / "bad.sym"
        sym.write_text("00:0150 Main\nnot a symbol\n", encoding="utf-8")
        with pytest.raises(LoadError, match="line 2"):
            SymbolFileLoader().load_file(sym)

    # @intent:test_case_missing 存在しないファイルはLoadErrorになることを検証します。
    def test_missing_file(self, tmp_path):
        with pytest.raises(LoadError):
            SymbolFileLoader().load_file(tmp_path / "missing.sym")
