# dmg_core_tracer/core/errors.py
"""
エミュレーションコアの例外定義。

ロード失敗、未定義オペコード、不正なパラメータの3系統を型で区別し、
ホスト側が停止・ログ出力・継続を選択できるようにします。
"""


# @intent:responsibility コアが送出する全ての例外の基底クラス。
class EmulatorError(Exception):
    pass


# @intent:responsibility プログラムイメージの読み込み失敗（存在しない、読めない、空、ROM領域超過）を表します。
class LoadError(EmulatorError):
    pass


# @intent:responsibility デコード表に存在しないオペコードをフェッチしたことを表します。
# @intent:post-condition 発生時点のアドレスと最初にフェッチしたバイトを保持します。
class UndefinedOpcodeError(EmulatorError):
    """
    未定義オペコード。実機ではCPUがロックアップする致命的な状態です。
    CPUのstep()からは送出されず、FAULTEDステータスのSnapshotに格納されて返されます。
    """
    def __init__(self, address: int, opcode: int):
        self.address = address
        self.opcode = opcode
        super().__init__(f"Undefined opcode ${opcode:02X} at ${address:04X}")


# @intent:responsibility 命令表の構築や設定値など、プログラマの誤りに起因する不正な引数を表します。
class InvalidParameterError(EmulatorError, ValueError):
    pass
