"""Tag store exceptions.

カスタム例外クラスを定義します。
"""


class UnsupportedTagSourceError(Exception):
    """取り込み対象外の拡張子のタグソースが指定された場合の例外.

    Attributes:
        file_path: 対象ファイルのパス
        reason: 取り込めない理由
    """

    def __init__(self, file_path: str, reason: str) -> None:
        """例外初期化.

        Args:
            file_path: 対象ファイルのパス
            reason: 取り込めない理由
        """
        self.file_path = file_path
        self.reason = reason
        super().__init__(f"Unsupported tag source: {file_path} ({reason}). Supported: *.csv, *.txt")


class CorruptTagDatabaseError(Exception):
    """保存済みタグDBが読み込めない（破損・不整合）場合の例外.

    `TagDatabase.load()` 内部で送出され、呼び出し側には None（新規作成扱い）として返ります。

    Attributes:
        db_path: 対象DBファイルのパス
        reason: 破損と判断した理由
    """

    def __init__(self, db_path: str, reason: str) -> None:
        self.db_path = db_path
        self.reason = reason
        super().__init__(f"Corrupt tag database: {db_path} ({reason})")
