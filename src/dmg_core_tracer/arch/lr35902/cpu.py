# dmg_core_tracer/arch/lr35902/cpu.py
"""
LR35902 CPUエミュレーションの中心モジュール。

このモジュールはLR35902 CPUの具体的な実装を提供し、
AbstractCpuインターフェースを実装します。命令実行後のクロック供給、
割り込みディスパッチ、HALT/STOPの待機処理もここで行います。
"""
from typing import Dict, List, Optional, Tuple
import logging

from dmg_core_tracer.core.cpu import AbstractCpu
from dmg_core_tracer.core.snapshot import Operation, Snapshot, StepStatus
from dmg_core_tracer.arch.lr35902.state import Lr35902CpuState
from dmg_core_tracer.arch.lr35902.instructions import decode_opcode, execute_instruction
from dmg_core_tracer.arch.lr35902.instructions.base import push_word
from dmg_core_tracer.arch.lr35902 import disassembler
from dmg_core_tracer.devices.interrupt import InterruptController, InterruptSource, INTERRUPT_DISPATCH_CYCLES
from dmg_core_tracer.devices.timer import Clock
from dmg_core_tracer.transport.bus import Bus
from dmg_core_tracer.common.types import RegisterLayoutInfo, RegisterInfo

logger = logging.getLogger(__name__)

# @intent:constant HALT/STOP中の1ステップで経過するサイクル数。
IDLE_CYCLES = 4

HALT_IDLE_OPERATION = Operation(opcode_hex="76", mnemonic="HALT (suspended)", cycle_count=IDLE_CYCLES, length=0)
STOP_IDLE_OPERATION = Operation(opcode_hex="10", mnemonic="STOP (suspended)", cycle_count=IDLE_CYCLES, length=0)


# @intent:responsibility LR35902 CPUの具体的なエミュレーションロジックを提供します。
class Lr35902Cpu(AbstractCpu):
    """
    LR35902 CPUをエミュレートするクラス。
    AbstractCpuを継承し、フェッチ→デコード→実行→クロック→割り込みチェックの1ステップを実装します。
    """
    # @intent:responsibility Lr35902Cpuの初期化を行います。
    # @intent:pre-condition `bus`、`interrupts`、`clock`は同一のエミュレータコンテキストに属している必要があります。
    def __init__(self, bus: Bus, interrupts: InterruptController, clock: Clock):
        self._interrupts = interrupts
        self._clock = clock
        super().__init__(bus)

    @property
    def interrupts(self) -> InterruptController:
        return self._interrupts

    @property
    def clock(self) -> Clock:
        return self._clock

    # @intent:responsibility 電源投入時（ブートROM実行後）のレジスタ値を生成します。
    # @intent:rationale ブートROMはエミュレートしないため、PCは0から開始します。
    def _create_initial_state(self) -> Lr35902CpuState:
        return Lr35902CpuState(
            pc=0x0000, sp=0xFFFE,
            a=0x01, f=0xB0, b=0x00, c=0x13, d=0x00, e=0xD8, h=0x01, l=0x4D,
        )

    def _fetch(self) -> int:
        return self._bus.read(self._state.pc)

    # @intent:rationale 実際のデコードロジックは`instructions`パッケージに委譲します。
    def _decode(self, opcode: int) -> Operation:
        return decode_opcode(opcode, self._bus, self._state.pc)

    def _execute(self, operation: Operation) -> int:
        return execute_instruction(operation, self._state, self._bus, self._interrupts)

    # @intent:responsibility 命令のサイクル数をクロックに報告し、EI遅延を進めてから割り込みをチェックします。
    def _complete_step(self, cycles: int) -> Tuple[int, Optional[int]]:
        self._clock.step(cycles)
        self._interrupts.tick()
        return self._service_interrupts(cycles)

    # @intent:responsibility HALT/STOP中のアイドルティックを処理します。
    # @intent:rationale HALTは許可された割り込み要求（IMEに関係なく）で、STOPはジョイパッド割り込み要求で復帰します。
    def _handle_halt(self, current_pc: int) -> Optional[Snapshot]:
        state = self._state
        if state.stopped:
            if not self._interrupts.request_mask & InterruptSource.JOYPAD.bit:
                # STOP中はディバイダも停止する
                self._clock.idle(IDLE_CYCLES)
                return self._create_snapshot(current_pc, STOP_IDLE_OPERATION, IDLE_CYCLES,
                                             status=StepStatus.STOPPED)
            state.stopped = False
            logger.info("CPU woke from STOP at $%04X", current_pc)

        if not state.halted:
            return None

        self._clock.step(IDLE_CYCLES)
        cycles, vector = self._service_interrupts(IDLE_CYCLES)
        return self._create_snapshot(current_pc, HALT_IDLE_OPERATION, cycles,
                                     status=StepStatus.HALTED, interrupt_vector=vector)

    # @intent:responsibility 保留中の割り込みをディスパッチします。
    # @intent:return (ディスパッチ分を加算したサイクル数, ディスパッチしたベクタまたはNone)
    def _service_interrupts(self, cycles: int) -> Tuple[int, Optional[int]]:
        state = self._state
        if state.halted and self._interrupts.has_requested():
            state.halted = False

        source = self._interrupts.pending()
        if source is None:
            return cycles, None

        # PCを退避し、IMEをクリアしてベクタへジャンプ
        push_word(state, self._bus, state.pc)
        self._interrupts.set_master_enable(False)
        self._interrupts.acknowledge(source)
        state.pc = source.vector
        self._clock.step(INTERRUPT_DISPATCH_CYCLES)
        logger.debug("Dispatched %s interrupt to $%04X", source.name, source.vector)
        return cycles + INTERRUPT_DISPATCH_CYCLES, source.vector

    def get_register_map(self) -> Dict[str, int]:
        s = self._state
        return {
            "A": s.a, "F": s.f, "B": s.b, "C": s.c, "D": s.d, "E": s.e, "H": s.h, "L": s.l,
            "AF": s.af, "BC": s.bc, "DE": s.de, "HL": s.hl,
            "SP": s.sp, "PC": s.pc,
            "IME": int(self._interrupts.master_enable),
            "IE": self._interrupts.enable_mask,
            "IF": self._interrupts.request_mask,
        }

    def get_register_layout(self) -> List[RegisterLayoutInfo]:
        return [
            RegisterLayoutInfo("Main Registers", [
                RegisterInfo("AF", 16), RegisterInfo("BC", 16), RegisterInfo("DE", 16), RegisterInfo("HL", 16)
            ]),
            RegisterLayoutInfo("Pointers", [
                RegisterInfo("SP", 16), RegisterInfo("PC", 16)
            ]),
            RegisterLayoutInfo("Interrupts", [
                RegisterInfo("IME", 8), RegisterInfo("IE", 8), RegisterInfo("IF", 8)
            ])
        ]

    def get_flag_state(self) -> Dict[str, bool]:
        s = self._state
        return {
            "Z": s.flag_z,
            "N": s.flag_n,
            "H": s.flag_h,
            "C": s.flag_c
        }

    def disassemble(self, start_addr: int, length: int) -> List[Tuple[int, str, str]]:
        return disassembler.disassemble(self._bus, start_addr, length)
