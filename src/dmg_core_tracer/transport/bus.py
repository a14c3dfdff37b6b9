# dmg_core_tracer/transport/bus.py
"""
Transport Layer (共通バス)

このモジュールは、システム全体のメモリアドレス空間を抽象化し、
読み書きアクセスを適切なデバイスに委譲する責務を負います。
"""
from abc import ABC, abstractmethod
from typing import List, Optional, Tuple
from dataclasses import dataclass
from enum import Enum
import logging

logger = logging.getLogger(__name__)

# @intent:constant マップされていないアドレスや書き込み専用レジスタを読んだ時に返る固定値。
OPEN_BUS_VALUE = 0xFF

# @intent:responsibility バスアクセスを記録するためのタイプを定義します。
class BusAccessType(Enum):
    READ = "READ"
    WRITE = "WRITE"
    IO_READ = "IO_READ"
    IO_WRITE = "IO_WRITE"

# @intent:responsibility 個々のバスアクセス操作を記録します。
@dataclass(frozen=True)
class BusAccess:
    """
    バス上で行われた単一のアクセス（読み込みまたは書き込み）を記録するデータクラス。
    """
    address: int
    data: int # 8bit value
    access_type: BusAccessType
    previous_data: Optional[int] = None # 書き込み前の値（WRITEのみ）

# @intent:responsibility バスの抽象デバイスインターフェースを定義します。
class Device(ABC):
    """
    バスに接続されるデバイスの抽象基底クラス。
    全てのデバイスはreadとwriteのインターフェースを実装する必要があります。
    """
    # @intent:responsibility 指定されたオフセットから8bitのデータを読み出す責務を負います。
    @abstractmethod
    def read(self, address: int) -> int:
        """
        指定されたアドレスから8bitのデータを読み出します。
        アドレスはデバイス内でのオフセットとして扱われます。
        """
        pass

    # @intent:responsibility 指定されたオフセットに8bitのデータを書き込みます。
    @abstractmethod
    def write(self, address: int, data: int) -> None:
        """
        指定されたアドレスに8bitのデータを書き込みます。
        アドレスはデバイス内でのオフセットとして扱われます。
        """
        pass

    # @intent:responsibility 副作用なしに値を読み出します。デフォルトはreadと同じです。
    def peek(self, address: int) -> int:
        return self.read(address)

# @intent:responsibility 基本的なRAMデバイスの機能を提供します。
class RAM(Device):
    """
    プレーンな記憶領域を持つRAMデバイス。VRAM、WRAM、HRAMなどに使用します。
    """
    # @intent:pre-condition sizeは正の整数である必要があります。
    def __init__(self, size: int):
        if not isinstance(size, int) or size <= 0:
            raise ValueError("RAM size must be a positive integer.")
        self._memory = bytearray(size)
        self._size = size

    def read(self, address: int) -> int:
        if not 0 <= address < self._size:
            raise IndexError(f"Address {address} out of bounds for RAM of size {self._size}.")
        return self._memory[address]

    def write(self, address: int, data: int) -> None:
        if not 0 <= address < self._size:
            raise IndexError(f"Address {address} out of bounds for RAM of size {self._size}.")
        if not 0 <= data <= 0xFF:
            raise ValueError(f"Data {data} is not an 8-bit value.")
        self._memory[address] = data

    # @intent:responsibility 内容を全て0クリアします。
    def clear(self) -> None:
        self._memory[:] = bytes(self._size)

    def get_size(self) -> int:
        return self._size

# @intent:responsibility 読み込み専用メモリ(ROM)の機能を提供します。
class ROM(RAM):
    """
    読み込み専用メモリデバイス。
    通常の書き込みは実機と同様に無視されます。内容の初期化は load_data 経由で行います。
    """
    def write(self, address: int, data: int) -> None:
        if not 0 <= address < self._size:
            raise IndexError(f"Address {address} out of bounds for ROM of size {self._size}.")
        # Intentional: ROM writes are ignored as per hardware behavior.
        pass

    # @intent:responsibility ROMの内容を初期化するためのバックドアメソッドです。
    def load_data(self, address: int, data: int) -> None:
        super().write(address, data)

# @intent:responsibility メモリアドレス空間を管理し、デバイスへのアクセスをディスパッチする共通バス。
# @intent:rationale バスの全てのアクセスを記録し、Snapshotに含めることでシステムの観測可能性を高めます。
class Bus:
    """
    メモリアドレス空間を管理し、デバイスへのアクセスをディスパッチする共通バス。
    どのデバイスにもマップされていないアドレスは例外を送出せず、
    読み込みは OPEN_BUS_VALUE を返し、書き込みは破棄されます。
    """
    def __init__(self):
        # メモリマップ: (start_address, end_address, device) のタプルリスト
        self._memory_map: List[Tuple[int, int, Device]] = []
        self._bus_activity_log: List[BusAccess] = []

    def _log_access(self, address: int, data: int, access_type: BusAccessType,
                    previous_data: Optional[int] = None) -> None:
        self._bus_activity_log.append(
            BusAccess(address=address, data=data, access_type=access_type, previous_data=previous_data)
        )

    # @intent:responsibility 記録されたバスアクティビティログを取得し、クリアします。
    def get_and_clear_activity_log(self) -> List[BusAccess]:
        log = self._bus_activity_log
        self._bus_activity_log = []
        return log

    # @intent:responsibility 指定されたアドレス範囲にデバイスを登録します。
    # @intent:pre-condition start_address <= end_addressかつ非負であり、deviceはDeviceのインスタンスである必要があります。
    # @intent:rationale アドレス範囲の重複チェックは行いません。重複しないマップの構築はMmuの責務です。
    def register_device(self, start_address: int, end_address: int, device: Device) -> None:
        """
        指定されたアドレス範囲にデバイスを登録します。
        RAM/ROMを登録する場合、そのサイズは範囲のサイズと一致する必要があります。
        """
        if not (0 <= start_address <= end_address):
            raise ValueError("Invalid address range: start_address must be <= end_address and non-negative.")
        if not isinstance(device, Device):
            raise TypeError("Device must be an instance of a class derived from Device.")

        if isinstance(device, RAM):
            expected_size = end_address - start_address + 1
            if device.get_size() != expected_size:
                raise ValueError(
                    f"Registered {type(device).__name__} device size ({device.get_size()} bytes) does not match "
                    f"the specified address range size ({expected_size} bytes)."
                )

        self._memory_map.append((start_address, end_address, device))

    # @intent:responsibility 指定されたアドレスに対応するデバイスとオフセットを検索します。
    # @intent:post-condition デバイスが見つからなかった場合は (None, 0) を返します。
    def _find_device(self, address: int) -> Tuple[Optional[Device], int]:
        for start, end, device in self._memory_map:
            if start <= address <= end:
                return device, address - start
        return None, 0

    def read(self, address: int) -> int:
        """
        指定されたアドレスから8bitのデータを読み出します。
        アクセスはログに記録されます。
        """
        data = self._read_device(address)
        self._log_access(address, data, BusAccessType.READ)
        return data

    # @intent:responsibility ログを記録せず、デバイスの副作用も起こさずにデータを読み出します。
    def peek(self, address: int) -> int:
        """
        指定されたアドレスから8bitのデータを読み出します（ログ記録なし）。
        逆アセンブラやデバッガなどのインスペクタ用。
        """
        device, offset = self._find_device(address & 0xFFFF)
        if device is None:
            return OPEN_BUS_VALUE
        return device.peek(offset)

    def write(self, address: int, data: int) -> None:
        """
        指定されたアドレスに8bitのデータを書き込みます。
        ROMやマップされていない領域への書き込みは黙って破棄されます。
        """
        previous = self.peek(address)
        self._write_device(address, data)
        self._log_access(address, data & 0xFF, BusAccessType.WRITE, previous_data=previous)

    # @intent:responsibility ROMを含む任意のRAM系デバイスへ直接書き込むローダー用のバックドアです。
    def load(self, address: int, data: int) -> None:
        device, offset = self._find_device(address & 0xFFFF)
        if isinstance(device, ROM):
            device.load_data(offset, data & 0xFF)
        elif device is not None:
            device.write(offset, data & 0xFF)

    def read_word(self, address: int) -> int:
        low = self.read(address & 0xFFFF)
        high = self.read((address + 1) & 0xFFFF)
        return (high << 8) | low

    def write_word(self, address: int, value: int) -> None:
        self.write(address & 0xFFFF, value & 0xFF)
        self.write((address + 1) & 0xFFFF, (value >> 8) & 0xFF)

    # @intent:responsibility I/Oレジスタから8bitのデータを読み出します。
    # @intent:rationale このマシンのI/Oはメモリマップドであるため、通常の読み出しをIO_READとして記録します。
    def read_io(self, address: int) -> int:
        data = self._read_device(address)
        self._log_access(address, data, BusAccessType.IO_READ)
        return data

    def write_io(self, address: int, data: int) -> None:
        previous = self.peek(address)
        self._write_device(address, data)
        self._log_access(address, data & 0xFF, BusAccessType.IO_WRITE, previous_data=previous)

    def _read_device(self, address: int) -> int:
        address &= 0xFFFF
        device, offset = self._find_device(address)
        if device is None:
            logger.debug("Read from unmapped address %#06x", address)
            return OPEN_BUS_VALUE
        return device.read(offset)

    def _write_device(self, address: int, data: int) -> None:
        address &= 0xFFFF
        device, offset = self._find_device(address)
        if device is None:
            logger.debug("Dropped write of %#04x to unmapped address %#06x", data & 0xFF, address)
            return
        device.write(offset, data & 0xFF)
