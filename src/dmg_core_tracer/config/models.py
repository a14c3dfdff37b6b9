from dataclasses import dataclass, field
from typing import Dict, Optional

@dataclass
class CpuInitialState:
    pc: Optional[int] = None  # Noneの場合は電源投入時の値を使用
    sp: Optional[int] = None
    registers: Dict[str, int] = field(default_factory=dict)

@dataclass
class SystemConfig:
    rom: Optional[str] = None      # 生のROMイメージのパス（設定ファイルからの相対パス可）
    symbols: Optional[str] = None  # シンボルファイルのパス
    initial_state: CpuInitialState = field(default_factory=CpuInitialState)
    io_registers: Dict[int, int] = field(default_factory=dict)  # リセット後に書き込むI/Oレジスタ値
