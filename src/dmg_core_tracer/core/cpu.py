# dmg_core_tracer/core/cpu.py
"""
Core Layer (抽象CPU)

このモジュールは、CPUの基本的な状態管理と命令サイクルの駆動に関する抽象化を提供します。
具体的な命令の振る舞いはInstruction Layerに移譲されます。
"""
from abc import ABC, abstractmethod
from dataclasses import replace
from typing import Optional, List, Dict, Tuple
import logging

from dmg_core_tracer.transport.bus import Bus
from dmg_core_tracer.core.snapshot import Snapshot, Operation, Metadata, StepStatus
from dmg_core_tracer.core.state import CpuState
from dmg_core_tracer.core.errors import UndefinedOpcodeError
from dmg_core_tracer.common.types import SymbolMap, RegisterLayoutInfo

logger = logging.getLogger(__name__)

# @intent:responsibility 抽象CPUの基本機能とインターフェースを定義します。
class AbstractCpu(ABC):
    """
    全てのCPUエミュレーションの基底となる抽象クラス。
    Busとのインターフェース、基本的な状態管理、命令サイクルの抽象化を提供します。
    """
    # @intent:responsibility CPUの状態とバスへの参照を初期化します。
    # @intent:pre-condition `bus`は有効なBusオブジェクトである必要があります。
    def __init__(self, bus: Bus):
        self._bus = bus
        self._state: CpuState = self._create_initial_state()
        self._cycle_count: int = 0
        self._fault: Optional[UndefinedOpcodeError] = None
        self._symbol_map: SymbolMap = {}
        self._reverse_symbol_map: Dict[int, str] = {}
        # @intent:rationale Stateオブジェクトの直接操作を避けるため、protectedな命名規則を採用。
        #                  外部からのアクセスは`get_state()`メソッドを介して行う。

    # @intent:responsibility シンボルマップを設定します。
    def set_symbol_map(self, symbol_map: SymbolMap) -> None:
        """
        シンボルマップ（名前とアドレスの対応表）を設定します。
        """
        self._symbol_map = symbol_map
        # 逆引きマップを作成して、アドレスからラベルを素早く引けるようにする
        self._reverse_symbol_map = {addr: name for name, addr in symbol_map.items()}

    def get_symbol_map(self) -> SymbolMap:
        return self._symbol_map

    # @intent:responsibility 初期状態のCpuStateオブジェクトを生成します。
    @abstractmethod
    def _create_initial_state(self) -> CpuState:
        """
        CPUの初期状態（電源投入時のレジスタ値）を生成して返します。
        """
        pass

    # @intent:responsibility CPUをリセットし、初期状態に戻します。
    # @intent:post-condition 記録されていた未定義オペコードのフォルトも解除されます。
    def reset(self) -> None:
        self._state = self._create_initial_state()
        self._cycle_count = 0
        self._fault = None

    # @intent:responsibility 現在のCPUの状態を返します。
    def get_state(self) -> CpuState:
        """
        現在のCPUの状態（レジスタ値など）を返します。
        返されるのは実行中の状態そのものであり、Snapshotに含まれるコピーとは異なります。
        """
        return self._state

    def get_cycle_count(self) -> int:
        return self._cycle_count

    # @intent:responsibility 未定義オペコードによって停止している場合、そのフォルトを返します。
    @property
    def fault(self) -> Optional[UndefinedOpcodeError]:
        return self._fault

    # @intent:responsibility メモリから次の命令（オペコード）をフェッチします。
    @abstractmethod
    def _fetch(self) -> int:
        """
        現在のPCからオペコードを読み出して返します。
        PCの更新はデコード後に命令長に応じて行われます。
        """
        pass

    # @intent:responsibility フェッチしたオペコードを解析し、Operationオブジェクトに変換します。
    # @intent:post-condition 未定義のオペコードの場合はUndefinedOpcodeErrorを送出します。
    @abstractmethod
    def _decode(self, opcode: int) -> Operation:
        pass

    # @intent:responsibility デコードされた命令を実行し、CPUの状態を更新します。
    # @intent:post-condition この命令で消費したクロックサイクル数を返します。
    @abstractmethod
    def _execute(self, operation: Operation) -> int:
        pass

    # @intent:responsibility CPUを1命令サイクル進め、その結果のスナップショットを返します。
    # @intent:rationale Template Methodパターンを採用し、共通の実行フロー（ログクリア→フェッチ→デコード→PC更新→実行→後処理→Snapshot生成）を定義します。
    #                  アーキテクチャ固有の振る舞い（HALT処理、割り込み処理など）はフックメソッドで対応します。
    def step(self) -> Snapshot:
        """
        CPUを1命令サイクル進め、その時点でのCPUとバスの状態を含むSnapshotオブジェクトを返します。
        未定義オペコードは例外として送出せず、FAULTEDステータスのSnapshotとして返します。
        """
        # 1. 前処理: 前サイクルまでの残存ログを破棄
        self._bus.get_and_clear_activity_log()
        initial_pc = self._state.pc

        if self._fault is not None:
            return self._create_fault_snapshot(self._fault)

        # 2. HALT判定 (Hook)
        halt_snapshot = self._handle_halt(initial_pc)
        if halt_snapshot:
            return halt_snapshot

        # 3. フェッチ & 4. デコード
        try:
            opcode = self._fetch()
            operation = self._decode(opcode)
        except UndefinedOpcodeError as e:
            self._state.pc = initial_pc
            self._fault = e
            logger.warning("CPU faulted: %s", e)
            return self._create_fault_snapshot(e)

        # 5. PC更新 (Hook)
        self._update_pc(operation)

        # 6. 実行
        cycles = self._execute(operation)

        # 7. 後処理 (Hook): クロック供給と割り込みチェック
        cycles, interrupt_vector = self._complete_step(cycles)

        # 8. Snapshot生成
        return self._create_snapshot(initial_pc, operation, cycles, interrupt_vector=interrupt_vector)

    # @intent:responsibility HALT状態の場合の処理を行います。
    # @intent:return HALT中であればその状態のSnapshot、そうでなければNone。
    def _handle_halt(self, current_pc: int) -> Optional[Snapshot]:
        """
        HALT状態の場合の処理。デフォルトは何もしない（Noneを返す）。
        """
        return None

    # @intent:responsibility 命令実行前にPCを更新します。
    def _update_pc(self, operation: Operation) -> None:
        self._state.pc = (self._state.pc + operation.length) & 0xFFFF

    # @intent:responsibility 命令実行後の処理（クロック供給、割り込みチェック）を行います。
    # @intent:return (このステップの総サイクル数, ディスパッチした割り込みベクタまたはNone)
    def _complete_step(self, cycles: int) -> Tuple[int, Optional[int]]:
        return cycles, None

    # @intent:responsibility スナップショットを生成します。
    # @intent:rationale 状態はコピーしてSnapshotに格納し、以降の実行で変化しないようにします。
    def _create_snapshot(self, initial_pc: int, operation: Operation, cycles: int,
                         status: StepStatus = StepStatus.EXECUTED,
                         interrupt_vector: Optional[int] = None) -> Snapshot:
        """
        実行結果からSnapshotオブジェクトを生成する共通ロジック。
        """
        bus_activity = self._bus.get_and_clear_activity_log()
        self._cycle_count += cycles

        symbol_label = self._reverse_symbol_map.get(initial_pc, "")
        symbol_info = f"{symbol_label}: " if symbol_label else ""
        symbol_info += f"{operation.mnemonic}"
        if operation.operands:
            symbol_info += " " + ", ".join(operation.operands)

        return Snapshot(
            state=replace(self._state),
            operation=operation,
            metadata=Metadata(cycle_count=self._cycle_count, symbol_info=symbol_info),
            bus_activity=bus_activity,
            cycles=cycles,
            status=status,
            interrupt_vector=interrupt_vector,
        )

    def _create_fault_snapshot(self, fault: UndefinedOpcodeError) -> Snapshot:
        operation = Operation(
            opcode_hex=f"{fault.opcode:02X}",
            mnemonic="UNDEFINED",
            operands=[f"${fault.opcode:02X}"],
            length=0,
        )
        return Snapshot(
            state=replace(self._state),
            operation=operation,
            metadata=Metadata(cycle_count=self._cycle_count, symbol_info=str(fault)),
            bus_activity=self._bus.get_and_clear_activity_log(),
            cycles=0,
            status=StepStatus.FAULTED,
            fault=fault,
        )

    @abstractmethod
    def get_register_map(self) -> Dict[str, int]:
        """
        現在のレジスタ値を辞書形式で返す。
        ホスト側ツールがCPUの内部構造を知らなくても値を表示できるようにするために使用される。
        """
        pass

    @abstractmethod
    def get_register_layout(self) -> List[RegisterLayoutInfo]:
        """
        レジスタをどのように配置・グループ化すべきかの定義を返す。
        """
        pass

    @abstractmethod
    def get_flag_state(self) -> Dict[str, bool]:
        pass

    @abstractmethod
    def disassemble(self, start_addr: int, length: int) -> List[Tuple[int, str, str]]:
        """
        指定されたメモリ範囲を逆アセンブルし、(address, hex_bytes, mnemonic) のタプルリストを返す。
        """
        pass
