# dmg_core_tracer/loader/loader.py
"""
コードローダーモジュール。
生のROMイメージ（.gb）と、シンボルファイル（.sym、"BB:AAAA label" 形式）のロードをサポートします。
"""
import re
from pathlib import Path
from typing import Union
import logging

from dmg_core_tracer.core.errors import LoadError
from dmg_core_tracer.common.types import SymbolMap
from dmg_core_tracer.transport.mmu import Mmu

logger = logging.getLogger(__name__)

PathLike = Union[str, Path]


class RomImageLoader:
    """
    生のROMイメージファイルを読み込むローダー。
    ヘッダの解析やバンク切り替えは行わず、ファイルの内容をそのまま返します。
    """
    # @intent:responsibility ファイルを読み込み、その内容をbytesとして返します。
    # @intent:post-condition ファイルが存在しない・読めない場合はLoadErrorを送出します。
    def load_file(self, file_path: PathLike) -> bytes:
        try:
            with open(file_path, 'rb') as f:
                data = f.read()
        except OSError as e:
            raise LoadError(f"Could not read ROM image '{file_path}': {e}") from e
        logger.info("Read %d bytes from %s", len(data), file_path)
        return data

    # @intent:responsibility イメージをMMUのROM領域にアドレス0から配置します。
    def load_into(self, mmu: Mmu, data: bytes) -> None:
        mmu.load_rom(data)


class SymbolFileLoader:
    """
    シンボルファイルを解析し、ラベル名とアドレスの対応表を返すローダー。

    各行は "BB:AAAA label" の形式です（BBはバンク番号、AAAAはアドレス、いずれも16進）。
    ";" 以降はコメントとして扱います。バンク切り替えは扱わないため、バンク番号は無視されます。
    """
    _LINE_PATTERN = re.compile(r'^([0-9A-Fa-f]{1,2}):([0-9A-Fa-f]{1,4})\s+(\S+)$')

    def load_file(self, file_path: PathLike) -> SymbolMap:
        symbol_map: SymbolMap = {}
        try:
            with open(file_path, 'r', encoding="utf-8") as f:
                lines = f.readlines()
        except OSError as e:
            raise LoadError(f"Could not read symbol file '{file_path}': {e}") from e

        for line_num, line in enumerate(lines, 1):
            comment_start = line.find(';')
            if comment_start != -1:
                line = line[:comment_start]
            line = line.strip()
            if not line:
                continue

            match = self._LINE_PATTERN.match(line)
            if not match:
                raise LoadError(f"Invalid symbol record on line {line_num}: {line}")
            _bank, address, label = match.groups()
            symbol_map[label] = int(address, 16)

        return symbol_map
