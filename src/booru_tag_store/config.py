"""アプリケーション設定の読み込み.

設定は YAML ファイルから読み込みます。ファイルがなければ既定値を使います。

settings.yml の例:

    fix_tags_on_save_load: true
    only_manual_trans_in_autocomplete: false
    translation_language: ja
    translation_service: google
    offline_translation_mode: false
    translation_file_path: ""
    translation_timeout: 10
"""

from __future__ import annotations

from dataclasses import dataclass, fields
from pathlib import Path

import yaml
from loguru import logger

from booru_tag_store.providers import DEFAULT_TIMEOUT, TranslationService


@dataclass
class Settings:
    """タグストア/翻訳ストアが参照する設定."""

    fix_tags_on_save_load: bool = True
    only_manual_trans_in_autocomplete: bool = False
    translation_language: str = "en"
    translation_service: TranslationService = TranslationService.GOOGLE_TRANSLATE
    offline_translation_mode: bool = False
    translation_file_path: str = ""
    translation_timeout: float = DEFAULT_TIMEOUT

    def __post_init__(self) -> None:
        self.translation_service = TranslationService(self.translation_service)
        self.translation_timeout = float(self.translation_timeout)
        if self.translation_file_path is None:
            self.translation_file_path = ""


def load_settings(settings_yml: Path | str | None) -> Settings:
    """settings.yml を読み込んで Settings を返す.

    Args:
        settings_yml: 設定ファイルのパス（None や存在しない場合は既定値）

    Returns:
        設定

    Raises:
        ValueError: YAML のトップレベルがマッピングでない、または値が不正な場合
    """
    if settings_yml is None or not Path(settings_yml).exists():
        logger.info("Settings file not found, using defaults")
        return Settings()

    with open(settings_yml, encoding="utf-8") as f:
        config = yaml.safe_load(f) or {}

    if not isinstance(config, dict):
        msg = f"Settings file must contain a mapping, got {type(config)}"
        raise ValueError(msg)

    known = {f.name for f in fields(Settings)}
    unknown = sorted(set(config) - known)
    if unknown:
        logger.warning(f"Ignoring unknown settings in {settings_yml}: {', '.join(unknown)}")

    settings = Settings(**{k: v for k, v in config.items() if k in known})
    logger.info(f"Loaded settings from {settings_yml}")
    return settings
