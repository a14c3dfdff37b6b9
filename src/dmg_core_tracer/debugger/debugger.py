# dmg_core_tracer/debugger/debugger.py
"""
デバッガモジュール。

コアエンジンの実行を制御し、ユーザーが指定した条件（ブレークポイント）で
実行を中断させる責務を負います。中断は命令と命令の間でのみ発生します。
"""
from collections import deque
from dataclasses import dataclass, replace
from enum import Enum
from typing import Deque, List, Optional
import logging

from dmg_core_tracer.core.cpu import AbstractCpu
from dmg_core_tracer.core.snapshot import Snapshot, BusAccessType
from dmg_core_tracer.core.state import CpuState
from dmg_core_tracer.core.errors import InvalidParameterError

logger = logging.getLogger(__name__)

# @intent:constant 履歴に保持するSnapshotの既定の上限数。
DEFAULT_HISTORY_LIMIT = 1000

# @intent:responsibility ブレークポイントの条件タイプを定義します。
class BreakpointConditionType(Enum):
    PC_MATCH = "PC_MATCH"               # プログラムカウンタが特定のアドレスに一致
    MEMORY_READ = "MEMORY_READ"         # 特定のアドレスが読み込まれた
    MEMORY_WRITE = "MEMORY_WRITE"       # 特定のアドレスに書き込まれた
    REGISTER_VALUE = "REGISTER_VALUE"   # 特定のレジスタが特定の値になった
    REGISTER_CHANGE = "REGISTER_CHANGE" # 特定のレジスタの値が変化した

# @intent:responsibility run()が停止した理由を定義します。
class StopReason(Enum):
    BREAKPOINT = "BREAKPOINT"
    FAULT = "FAULT"
    MAX_STEPS = "MAX_STEPS"
    STOPPED = "STOPPED" # stop()による停止

# @intent:responsibility ブレークポイントをトリガーする条件を定義します。
@dataclass(frozen=True)
class BreakpointCondition:
    """
    ブレークポイントがヒットするための条件を定義するデータクラス。
    """
    condition_type: BreakpointConditionType
    value: Optional[int] = None           # PC_MATCH, REGISTER_VALUEで使用
    address: Optional[int] = None         # MEMORY_READ, MEMORY_WRITEで使用
    register_name: Optional[str] = None   # REGISTER_VALUE, REGISTER_CHANGEで使用（例: "a", "hl"）
    enabled: bool = True                  # 有効/無効状態

    # @intent:rationale ブレークポイント条件は、一度設定したら変更されないため、不変にします（frozen=True）。

# @intent:responsibility コアエンジンの実行制御とブレークポイント管理を行います。
class Debugger:
    """
    CPUの実行を制御し、ブレークポイントの管理を行うクラス。
    実行履歴は最新のhistory_limit件のみ保持します。逆方向の実行はサポートしません。
    """
    def __init__(self, cpu: AbstractCpu, history_limit: int = DEFAULT_HISTORY_LIMIT):
        if history_limit <= 0:
            raise InvalidParameterError("history_limit must be a positive integer.")
        self._cpu = cpu
        self._breakpoints: List[BreakpointCondition] = []
        self._running: bool = False
        self._previous_state: CpuState = replace(self._cpu.get_state())
        self._last_snapshot: Optional[Snapshot] = None
        self._history: Deque[Snapshot] = deque(maxlen=history_limit)

    def add_breakpoint(self, condition: BreakpointCondition) -> None:
        if condition not in self._breakpoints:
            self._breakpoints.append(condition)

    def update_breakpoint(self, old_condition: BreakpointCondition, new_condition: BreakpointCondition) -> None:
        """
        既存のブレークポイントを更新します（有効/無効の切り替えなど）。
        """
        if old_condition in self._breakpoints:
            idx = self._breakpoints.index(old_condition)
            self._breakpoints[idx] = new_condition

    def remove_breakpoint(self, condition: BreakpointCondition) -> None:
        if condition in self._breakpoints:
            self._breakpoints.remove(condition)

    def get_breakpoints(self) -> List[BreakpointCondition]:
        return list(self._breakpoints)

    def get_history(self) -> List[Snapshot]:
        """
        現在の実行履歴を古い順に返します。
        """
        return list(self._history)

    def get_last_snapshot(self) -> Optional[Snapshot]:
        return self._last_snapshot

    def _pc_breakpoint_hit(self, pc: int) -> bool:
        return any(
            bp.enabled and bp.condition_type == BreakpointConditionType.PC_MATCH and bp.value == pc
            for bp in self._breakpoints
        )

    # @intent:responsibility Snapshotに基づいてPC_MATCH以外のブレークポイントをチェックします。
    def _check_other_breakpoints(self, snapshot: Snapshot) -> bool:
        current_state = snapshot.state

        for bp in self._breakpoints:
            if not bp.enabled:
                continue

            if bp.condition_type == BreakpointConditionType.MEMORY_READ:
                for access in snapshot.bus_activity:
                    if access.access_type == BusAccessType.READ and access.address == bp.address:
                        return True
            elif bp.condition_type == BreakpointConditionType.MEMORY_WRITE:
                for access in snapshot.bus_activity:
                    if access.access_type == BusAccessType.WRITE and access.address == bp.address:
                        return True
            elif bp.condition_type == BreakpointConditionType.REGISTER_VALUE:
                if bp.register_name and hasattr(current_state, bp.register_name):
                    if getattr(current_state, bp.register_name) == bp.value:
                        return True
            elif bp.condition_type == BreakpointConditionType.REGISTER_CHANGE:
                if bp.register_name and hasattr(current_state, bp.register_name):
                    if getattr(current_state, bp.register_name) != getattr(self._previous_state, bp.register_name):
                        return True
        return False

    def step_instruction(self) -> Snapshot:
        """
        CPUを1命令分実行し、その結果のSnapshotを返します。
        """
        self._previous_state = replace(self._cpu.get_state())
        snapshot = self._cpu.step()
        self._last_snapshot = snapshot
        self._history.append(snapshot)
        return snapshot

    # @intent:responsibility ブレークポイント、フォルト、またはmax_stepsに達するまで実行を継続します。
    # @intent:rationale 現在のPCにブレークポイントがある場合でも最初の1命令は実行し、再開できるようにします。
    def run(self, max_steps: int) -> StopReason:
        if max_steps <= 0:
            raise InvalidParameterError("max_steps must be a positive integer.")
        self._running = True
        steps = 0

        while self._running and steps < max_steps:
            current_pc = self._cpu.get_state().pc
            if steps > 0 and self._pc_breakpoint_hit(current_pc):
                self._running = False
                logger.info("Breakpoint hit at PC: %#06x", current_pc)
                return StopReason.BREAKPOINT

            snapshot = self.step_instruction()
            steps += 1

            if snapshot.is_fault:
                self._running = False
                logger.warning("Execution stopped by fault: %s", snapshot.fault)
                return StopReason.FAULT

            if self._check_other_breakpoints(snapshot):
                self._running = False
                logger.info("Breakpoint hit at PC: %#06x", snapshot.state.pc)
                return StopReason.BREAKPOINT

        if not self._running:
            return StopReason.STOPPED
        self._running = False
        return StopReason.MAX_STEPS

    # @intent:responsibility 別スレッドなどから実行中のrun()を次の命令境界で停止させます。
    def stop(self) -> None:
        self._running = False
