"""タグDB（Tag Store）.

タグ集合・使用回数・alias 関係と、ソースファイルごとの変更検出台帳（loaded_files）を保持します。

処理の流れ:
    1. アダプタでファイルを ProtoTag 列に変換（共有状態に触れない）
    2. `build_scratch_batch()` で正規化・ハッシュ化・バッチ内重複の畳み込み（ロック外）
    3. ロック内で共有インデックスへ反映（既存なら count 加算、新規なら追加）

不変条件:
    - hashes（hash → tags の位置）と tags は 1:1 対応
    - 同じ hash を持つ TagRecord は存在しない
"""

from __future__ import annotations

import threading
from collections.abc import Iterable
from dataclasses import dataclass
from pathlib import Path
from typing import TYPE_CHECKING

from loguru import logger

from booru_tag_store.adapters.base_adapter import BaseAdapter
from booru_tag_store.adapters.csv_adapter import CSV_Adapter
from booru_tag_store.adapters.txt_adapter import TXT_Adapter

from .exceptions import UnsupportedTagSourceError
from .merge import ProtoTag, build_scratch_batch
from .normalize import file_checksum, file_checksum_path, normalize_tag, text_hash

if TYPE_CHECKING:
    from .translations import TranslationStore

CURRENT_VERSION = 101

TAG_SOURCE_SUFFIXES = (".csv", ".txt")

_ADAPTERS: dict[str, type[BaseAdapter]] = {
    CSV_Adapter.suffix: CSV_Adapter,
    TXT_Adapter.suffix: TXT_Adapter,
}


@dataclass
class TagRecord:
    """タグ1件.

    text は正規化済み（trim + 小文字、fix tags モードなら置換済み）で、hash は text から計算します。
    """

    text: str
    hash: int
    count: int = 0
    is_alias: bool = False
    parent: str | None = None
    translation: str | None = None

    def get_tag(self) -> str:
        """入力に使うタグ（alias の場合は参照先）を返す."""
        if self.is_alias and self.parent:
            return self.parent
        return self.text

    def __str__(self) -> str:
        translation = f" [{self.translation}]" if self.translation else ""
        if self.is_alias:
            return f"{self.text} -> {self.parent} ({self.count}){translation}"
        return f"{self.text} ({self.count}){translation}"


def list_tag_files(directory: Path | str, suffix: str) -> list[Path]:
    """ディレクトリ直下の指定拡張子ファイルをファイル名順で返す.

    Raises:
        FileNotFoundError: ディレクトリが存在しない場合
    """
    directory = Path(directory)
    if not directory.is_dir():
        raise FileNotFoundError(f"Tag directory not found: {directory}")
    return sorted(
        (p for p in directory.iterdir() if p.is_file() and p.suffix.lower() == suffix),
        key=lambda p: p.name,
    )


class TagDatabase:
    """タグDB本体.

    Attributes:
        version: スキーマバージョン（CURRENT_VERSION と異なる場合は再構築対象）
        fix_tags: fix tags モードで構築されたか
        tags: TagRecord のリスト
        loaded_files: ファイル名 → Adler-32 チェックサム
        hashes: hash → tags 内の位置
        malformed_rows: 取り込みで読み飛ばした不正行の累計（診断用、保存しない）
    """

    def __init__(self, fix_tags: bool = False) -> None:
        self.version = CURRENT_VERSION
        self.fix_tags = fix_tags
        self.tags: list[TagRecord] = []
        self.loaded_files: dict[str, int] = {}
        self.hashes: dict[int, int] = {}
        self.malformed_rows = 0
        self._lock = threading.Lock()

    def __len__(self) -> int:
        return len(self.tags)

    # ------------------------------------------------------------------
    # 状態操作
    # ------------------------------------------------------------------
    def clear(self) -> None:
        """タグとインデックスを空にする（loaded_files は残す）."""
        with self._lock:
            self.tags.clear()
            self.hashes.clear()

    def set_fix_tags(self, fix_tags: bool) -> None:
        self.fix_tags = fix_tags

    def reset_version(self) -> None:
        self.version = CURRENT_VERSION

    def clear_loaded_files(self) -> None:
        self.loaded_files.clear()

    def sort_tags(self) -> None:
        """tags をタグ名順に並べ替え、インデックスを再構築する."""
        with self._lock:
            self.tags.sort(key=lambda t: t.text)
            self.hashes = {tag.hash: i for i, tag in enumerate(self.tags)}

    def get(self, tag: str) -> TagRecord | None:
        """タグ名（正規化前でも可）で TagRecord を引く."""
        pos = self.hashes.get(text_hash(normalize_tag(tag, self.fix_tags)))
        return self.tags[pos] if pos is not None else None

    def __contains__(self, tag: object) -> bool:
        return isinstance(tag, str) and self.get(tag) is not None

    # ------------------------------------------------------------------
    # 取り込み
    # ------------------------------------------------------------------
    def load_csv_from_dir(self, directory: Path | str, cancel_event: threading.Event | None = None) -> None:
        """ディレクトリ直下の *.csv を順番に取り込む."""
        self._load_from_dir(directory, CSV_Adapter.suffix, cancel_event)

    def load_txt_from_dir(self, directory: Path | str, cancel_event: threading.Event | None = None) -> None:
        """ディレクトリ直下の *.txt を順番に取り込む."""
        self._load_from_dir(directory, TXT_Adapter.suffix, cancel_event)

    def _load_from_dir(self, directory: Path | str, suffix: str, cancel_event: threading.Event | None) -> None:
        # 並列化はしない（CPU/メモリのピークを抑え、台帳の更新順を決定的にする）
        files = list_tag_files(directory, suffix)
        logger.info(f"Loading {len(files)} {suffix} file(s) from {directory}")
        for path in files:
            if cancel_event is not None and cancel_event.is_set():
                logger.info(f"Tag import cancelled before {path.name}")
                return
            self._load_file(_ADAPTERS[suffix](path), append=True)

    def load_csv_file(self, file_path: Path | str, append: bool = True) -> None:
        self._load_file(CSV_Adapter(file_path), append)

    def load_txt_file(self, file_path: Path | str, append: bool = True) -> None:
        self._load_file(TXT_Adapter(file_path), append)

    def load_tag_file(self, file_path: Path | str, append: bool = True) -> None:
        """拡張子でアダプタを選んで取り込む.

        Raises:
            UnsupportedTagSourceError: *.csv / *.txt 以外の場合
            FileNotFoundError: ファイルが存在しない場合
        """
        path = Path(file_path)
        adapter_cls = _ADAPTERS.get(path.suffix.lower())
        if adapter_cls is None:
            raise UnsupportedTagSourceError(str(path), f"unknown suffix {path.suffix!r}")
        self._load_file(adapter_cls(path), append)

    def _load_file(self, adapter: BaseAdapter, append: bool) -> None:
        data = adapter.load_bytes()
        checksum = file_checksum(data)
        file_name = adapter.file_path.name

        if self.loaded_files.get(file_name) == checksum:
            logger.debug(f"Skip unchanged tag file: {file_name}")
            return
        # 台帳は「取り込んだ」ではなく「見た」を表す（0行でも登録する）
        self.loaded_files[file_name] = checksum

        if not append:
            self.clear()

        proto_tags = adapter.parse(data)
        self.malformed_rows += adapter.skipped_rows
        added = self.merge_batch(proto_tags)
        logger.debug(f"Loaded {file_name}: {len(proto_tags)} row tag(s), {added} new tag(s)")

    def merge_batch(self, proto_tags: Iterable[ProtoTag]) -> int:
        """ProtoTag 列を共有インデックスへマージする（スレッドセーフ）.

        Returns:
            新規に追加された TagRecord の数
        """
        # ロック外: 正規化・ハッシュ計算・バッチ内重複の畳み込み
        batch = build_scratch_batch(proto_tags, self.fix_tags)

        added = 0
        with self._lock:
            for item in batch:
                pos = self.hashes.get(item.hash)
                if pos is not None:
                    self.tags[pos].count += item.count
                    continue
                self.hashes[item.hash] = len(self.tags)
                self.tags.append(
                    TagRecord(
                        text=item.text,
                        hash=item.hash,
                        count=item.count,
                        is_alias=item.is_alias,
                        parent=item.parent,
                    )
                )
                added += 1
        return added

    # ------------------------------------------------------------------
    # 更新判定
    # ------------------------------------------------------------------
    def is_stale(self, directory: Path | str, *, fix_tags: bool) -> bool:
        """ディレクトリの内容や設定から再構築が必要か判定する（台帳は変更しない）.

        Args:
            directory: タグソースディレクトリ
            fix_tags: 現在の設定の fix tags モード
        """
        if self.version != CURRENT_VERSION:
            return True
        if self.fix_tags != fix_tags:
            return True

        files = [p for suffix in TAG_SOURCE_SUFFIXES for p in list_tag_files(directory, suffix)]
        if not files:
            return False
        if len(self.loaded_files) != len(files):
            return True
        for path in files:
            stored = self.loaded_files.get(path.name)
            if stored is None or stored != file_checksum_path(path):
                return True
        return False

    # ------------------------------------------------------------------
    # 翻訳の投影
    # ------------------------------------------------------------------
    def load_translation(self, store: TranslationStore, only_manual: bool = False) -> None:
        """翻訳ストアから各 TagRecord.translation を設定し直す.

        Args:
            store: 翻訳ストア
            only_manual: True の場合、手動登録の翻訳のみ使う
        """
        with self._lock:
            for tag in self.tags:
                tag.translation = store.get_translation_by_hash(tag.hash, only_manual=only_manual)

    # ------------------------------------------------------------------
    # 保存/読み込み
    # ------------------------------------------------------------------
    def save(self, path: Path | str) -> None:
        from .database import save_tag_database

        save_tag_database(self, path)

    @staticmethod
    def load(path: Path | str) -> TagDatabase | None:
        """保存済みDBを読み込む（失敗時は None。呼び出し側は新規作成として扱う）."""
        from .database import load_tag_database

        return load_tag_database(path)
