"""タグソース/翻訳ファイル用のアダプタ群."""

from .base_adapter import BaseAdapter
from .csv_adapter import CSV_Adapter, parse_aliases, parse_csv_line
from .translation_file import (
    TranslationFileFormat,
    flatten_line_breaks,
    format_translation_line,
    parse_translation_line,
)
from .txt_adapter import TXT_Adapter

__all__ = [
    "BaseAdapter",
    "CSV_Adapter",
    "TXT_Adapter",
    "TranslationFileFormat",
    "flatten_line_breaks",
    "format_translation_line",
    "parse_aliases",
    "parse_csv_line",
    "parse_translation_line",
]
