"""翻訳ストア（Translation Store）.

正規化した original のハッシュ → 翻訳 の対応を保持し、追記専用の翻訳ファイルに保存します。

ロック方針:
    ストアごとに1つの RLock で、参照・外部翻訳呼び出し・追記をまとめて直列化します。
    同じ未翻訳タグに対する同時要求が両方ともプロバイダに流れて重複行を追記しないようにするためで、
    キー単位のロックにはしません（全翻訳処理が直列になることは許容する）。
"""

from __future__ import annotations

import asyncio
import threading
from dataclasses import dataclass, field
from pathlib import Path

import httpx
from loguru import logger

from booru_tag_store.adapters.translation_file import (
    TranslationFileFormat,
    flatten_line_breaks,
    format_translation_line,
    parse_translation_line,
)
from booru_tag_store.providers import TranslationProvider

from .normalize import text_hash

SOURCE_LANGUAGE = "en"


@dataclass(frozen=True)
class TranslationEntry:
    """翻訳1件（origin_hash は original を小文字化して計算する）."""

    original: str
    translation: str
    is_manual: bool = False
    origin_hash: int = field(init=False)

    def __post_init__(self) -> None:
        object.__setattr__(self, "origin_hash", text_hash(self.original))


class TranslationStore:
    """翻訳ストア.

    Args:
        language: 翻訳先の言語コード（翻訳ファイル名 `<language>.txt` にも使う）
        work_dir: 翻訳ファイルを置くディレクトリ
        provider: 外部翻訳プロバイダ（None の場合はキャッシュのみ）
        offline_mode: True の場合、外部翻訳を呼ばない
        custom_translation_file: 任意の翻訳ファイル（存在する場合のみ使う）
        lock: 共有したい場合のロック（None の場合はストア専用の RLock）
    """

    def __init__(
        self,
        language: str,
        work_dir: Path | str,
        provider: TranslationProvider | None = None,
        offline_mode: bool = False,
        custom_translation_file: Path | str | None = None,
        lock: threading.RLock | None = None,
    ) -> None:
        self.language = language
        self.work_dir = Path(work_dir)
        self.provider = provider
        self.offline_mode = offline_mode
        self._lock = lock if lock is not None else threading.RLock()
        self._entries: dict[int, TranslationEntry] = {}

        if custom_translation_file and Path(custom_translation_file).is_file():
            self.file_path = Path(custom_translation_file)
        else:
            self.file_path = self.work_dir / f"{language}.txt"
        self.file_format = TranslationFileFormat.from_path(self.file_path)

    def __len__(self) -> int:
        return len(self._entries)

    @property
    def entries(self) -> list[TranslationEntry]:
        """ファイル順（追加順）のエントリ一覧."""
        with self._lock:
            return list(self._entries.values())

    # ------------------------------------------------------------------
    # 読み込み
    # ------------------------------------------------------------------
    def load(self) -> None:
        """翻訳ファイルを読み込む（同じ original は先勝ち）.

        ファイルがなければヘッダーコメントだけのファイルを作成します。

        Raises:
            OSError: 読み込み/作成に失敗した場合
        """
        with self._lock:
            if not self.file_path.exists():
                self.file_path.parent.mkdir(parents=True, exist_ok=True)
                self.file_path.write_text(self.file_format.header + "\n", encoding="utf-8")
                logger.info(f"Created translation file: {self.file_path}")
                return

            loaded = 0
            with open(self.file_path, encoding="utf-8-sig") as f:
                for line in f:
                    parsed = parse_translation_line(line.rstrip("\r\n"), self.file_format)
                    if parsed is None:
                        continue
                    entry = TranslationEntry(parsed.original, parsed.translation, parsed.is_manual)
                    if entry.origin_hash in self._entries:
                        continue
                    self._entries[entry.origin_hash] = entry
                    loaded += 1

        logger.info(f"Loaded {loaded} translation(s) from {self.file_path}")

    def convert_csv_to_txt(self) -> None:
        """旧CSV形式の翻訳ファイルを `<language>.txt` に書き出して切り替える（TXT形式なら何もしない）."""
        with self._lock:
            if self.file_format is not TranslationFileFormat.CSV:
                return

            txt_path = self.work_dir / f"{self.language}.txt"
            txt_format = TranslationFileFormat.TXT
            lines = [txt_format.header]
            lines.extend(
                format_translation_line(e.original, e.translation, e.is_manual, txt_format)
                for e in self._entries.values()
            )
            txt_path.parent.mkdir(parents=True, exist_ok=True)
            txt_path.write_text("\n".join(lines) + "\n", encoding="utf-8")
            logger.info(f"Converted {self.file_path} to {txt_path}")

            self.file_path = txt_path
            self.file_format = txt_format
            self._entries.clear()
            self.load()

    # ------------------------------------------------------------------
    # 参照
    # ------------------------------------------------------------------
    def contains(self, text: str) -> bool:
        return self.contains_hash(text_hash(text))

    def contains_hash(self, origin_hash: int) -> bool:
        with self._lock:
            return origin_hash in self._entries

    def get_translation(self, text: str, only_manual: bool = False) -> str | None:
        """original（大文字小文字・前後空白は無視）で翻訳を引く.

        Args:
            text: original
            only_manual: True の場合、手動登録のエントリのみ返す（自動翻訳にはフォールバックしない）
        """
        if not text or not text.strip():
            return None
        return self.get_translation_by_hash(text_hash(text), only_manual=only_manual)

    def get_translation_by_hash(self, origin_hash: int, only_manual: bool = False) -> str | None:
        with self._lock:
            entry = self._entries.get(origin_hash)
        if entry is None or (only_manual and not entry.is_manual):
            return None
        return entry.translation

    # ------------------------------------------------------------------
    # 追加
    # ------------------------------------------------------------------
    def add_translation(self, original: str, translation: str, is_manual: bool) -> TranslationEntry:
        """翻訳を追記してインデックスに登録する.

        ファイルへの追記を先に行い、その後でインデックスを更新します。
        既に同じ original がある場合、メモリ上のエントリは新しいもので置き換えます。
        改行は空白に置き換えて1行にします。

        Raises:
            ValueError: translation に区切り文字を含み、ファイルに書き出せない場合
            OSError: 追記に失敗した場合（インデックスは更新されない）
        """
        entry = TranslationEntry(flatten_line_breaks(original), flatten_line_breaks(translation), is_manual)
        line = format_translation_line(entry.original, entry.translation, is_manual, self.file_format)
        with self._lock:
            self.file_path.parent.mkdir(parents=True, exist_ok=True)
            with open(self.file_path, "a", encoding="utf-8") as f:
                f.write(line + "\n")
            self._entries[entry.origin_hash] = entry
        return entry

    async def add_translation_async(self, original: str, translation: str, is_manual: bool) -> TranslationEntry:
        return await asyncio.to_thread(self.add_translation, original, translation, is_manual)

    # ------------------------------------------------------------------
    # 翻訳
    # ------------------------------------------------------------------
    def translate(self, text: str) -> str:
        """キャッシュ → 外部翻訳の順で翻訳する（見つからない場合は空文字）.

        参照・外部翻訳・追記を1つのロックの中で行います。
        """
        with self._lock:
            if not text or not text.strip():
                return ""

            cached = self.get_translation(text)
            if cached is not None:
                return cached

            if self.offline_mode or self.provider is None:
                return ""

            try:
                result = self.provider.translate(text, SOURCE_LANGUAGE, self.language)
            except httpx.HTTPError as e:
                logger.warning(f"Translation request failed for {text!r}: {e}")
                return ""

            result = flatten_line_breaks(result or "")
            if result:
                try:
                    self.add_translation(text, result, is_manual=False)
                except ValueError as e:
                    # 結果は返すが保存しない（次回も外部翻訳を呼ぶ）
                    logger.warning(f"Not caching translation for {text!r}: {e}")
            return result

    async def translate_async(self, text: str) -> str:
        """translate() をワーカースレッドで実行する（同じロックで直列化される）."""
        return await asyncio.to_thread(self.translate, text)
