# dmg_core_tracer/core/snapshot.py
"""
実行状態の不変スナップショット

このモジュールは、1ステップ実行後のCPUとバスの状態を記録した不変のデータ構造を定義します。
ホスト（ドライバ、デバッガ、テストハーネス）へのステップ結果の提供に用いる責務を負います。
"""
from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional

from dmg_core_tracer.core.state import CpuState
from dmg_core_tracer.core.errors import UndefinedOpcodeError
from dmg_core_tracer.transport.bus import BusAccessType, BusAccess


# @intent:responsibility 実行された命令の詳細を記録します。
@dataclass(frozen=True)
class Operation:
    """
    実行された命令の詳細（HEX、ニーモニック、オペランド）を記録するデータクラス。
    """
    opcode_hex: str # 例: "C3", CBプレフィックス命令は "CB47"
    mnemonic: str # 例: "JP a16"
    operands: List[str] = field(default_factory=list) # 例: ["$1234"]
    operand_bytes: List[int] = field(default_factory=list) # 生のオペランドバイト
    cycle_count: int = 0 # 分岐しない場合のクロックサイクル数
    length: int = 1 # 命令のバイト長
    branch_cycle_count: int = 0 # 条件成立時のサイクル数（条件付き命令のみ）

# @intent:responsibility 1ステップの結果種別を定義します。
class StepStatus(Enum):
    EXECUTED = "EXECUTED" # 命令を1つ実行した
    HALTED = "HALTED"     # HALT中のアイドルティック
    STOPPED = "STOPPED"   # STOP中のアイドルティック
    FAULTED = "FAULTED"   # 未定義オペコードにより停止

# @intent:responsibility 実行に関するメタデータを記録します。
@dataclass(frozen=True)
class Metadata:
    """
    実行に関するメタデータ（累計サイクル数、シンボル情報など）を記録するデータクラス。
    """
    cycle_count: int
    symbol_info: Optional[str] = None # 例: "main_loop: JP a16 $0150"

# @intent:responsibility ある一時点におけるCPUとバスの状態を不変に記録します。
@dataclass(frozen=True)
class Snapshot:
    """
    1ステップ実行後のCPUとバスの状態を記録した不変のデータ構造。
    `cycles` はこのステップで経過したサイクル数（割り込みディスパッチ分を含む）です。
    """
    state: CpuState
    operation: Operation
    metadata: Metadata
    bus_activity: List[BusAccess] = field(default_factory=list)
    cycles: int = 0
    status: StepStatus = StepStatus.EXECUTED
    fault: Optional[UndefinedOpcodeError] = None
    interrupt_vector: Optional[int] = None # このステップでディスパッチした割り込みベクタ

    @property
    def is_fault(self) -> bool:
        return self.status is StepStatus.FAULTED
