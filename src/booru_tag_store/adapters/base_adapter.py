"""タグソース取り込み用アダプタ（基底クラス）.

CSV / TXT などのタグソースファイルを、共通インターフェースで ProtoTag 列に変換するための
抽象基底クラスを定義します。

アダプタは共有インデックスに触れません。ファイルのバイト列を読み、行単位で解析するだけです。
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Iterator
from pathlib import Path

from loguru import logger

from booru_tag_store.core.merge import ProtoTag

_UTF8_BOM = b"\xef\xbb\xbf"


class BaseAdapter(ABC):
    """行指向タグソースアダプタの基底クラス.

    全てのタグソースアダプタはこのクラスを継承し、parse_line() を実装します。

    Attributes:
        file_path: ソースファイルのパス
        skipped_rows: 直近の parse() で読み飛ばした不正行の数（診断用）
    """

    #: 対象とするファイル拡張子（小文字、ドット付き）
    suffix: str = ""

    def __init__(self, file_path: Path | str) -> None:
        """アダプタ初期化.

        Args:
            file_path: ソースファイルのパス

        Raises:
            FileNotFoundError: ファイルが存在しない場合
        """
        self.file_path = Path(file_path)
        if not self.file_path.is_file():
            raise FileNotFoundError(f"Tag source file not found: {self.file_path}")
        self.skipped_rows = 0

    def load_bytes(self) -> bytes:
        """ファイルの生バイト列を読み込む（チェックサム計算と解析で共用する）."""
        return self.file_path.read_bytes()

    def read(self) -> list[ProtoTag]:
        """ファイルを読み込んで ProtoTag 列に変換する."""
        return self.parse(self.load_bytes())

    def parse(self, data: bytes) -> list[ProtoTag]:
        """バイト列を ProtoTag 列に変換する.

        不正行（UTF-8 として読めない行、parse_line() が None を返した行）は
        例外にせず読み飛ばし、skipped_rows に数えます。
        """
        self.skipped_rows = 0
        tags: list[ProtoTag] = []

        for line in self._iter_lines(data):
            if line is None:
                self.skipped_rows += 1
                continue
            parsed = self.parse_line(line)
            if parsed is None:
                self.skipped_rows += 1
                continue
            tags.extend(parsed)

        if self.skipped_rows:
            logger.debug(f"{self.file_path.name}: skipped {self.skipped_rows} malformed row(s)")
        return tags

    @abstractmethod
    def parse_line(self, line: str) -> list[ProtoTag] | None:
        """1行を解析する.

        Returns:
            - ProtoTag のリスト（空行など、何も生成しない正常行は空リスト）
            - 不正行の場合は None
        """
        ...

    def _iter_lines(self, data: bytes) -> Iterator[str | None]:
        """UTF-8 で行ごとにデコードする（デコードできない行は None）.

        1行の文字化けでファイル全体を捨てないよう、行単位でデコードします。
        """
        if data.startswith(_UTF8_BOM):
            data = data[len(_UTF8_BOM) :]

        for raw in data.splitlines():
            try:
                yield raw.decode("utf-8")
            except UnicodeDecodeError:
                yield None
