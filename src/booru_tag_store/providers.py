"""外部翻訳サービス（翻訳プロバイダ）.

TranslationStore は翻訳プロバイダを注入して使います。プロバイダは
`translate(text, source_lang, target_lang) -> str` を持つ任意のオブジェクトです。
"""

from __future__ import annotations

from enum import Enum
from typing import Protocol

import httpx
from loguru import logger

GOOGLE_TRANSLATE_URL = "https://translate.googleapis.com/translate_a/single"
DEFAULT_TIMEOUT = 10.0


class TranslationService(str, Enum):
    """選択可能な翻訳サービス."""

    GOOGLE_TRANSLATE = "google"


class TranslationProvider(Protocol):
    """翻訳プロバイダのインターフェース.

    翻訳できなかった場合は空文字を返すか、httpx.HTTPError を送出します。
    """

    def translate(self, text: str, source_lang: str, target_lang: str) -> str: ...


class GoogleTranslator:
    """Google 翻訳（非公式の `translate_a/single` エンドポイント）.

    Args:
        timeout: リクエストのタイムアウト秒
        client: テスト用に差し替える httpx.Client（None の場合は都度生成）
    """

    def __init__(self, timeout: float = DEFAULT_TIMEOUT, client: httpx.Client | None = None) -> None:
        self.timeout = timeout
        self._client = client

    def translate(self, text: str, source_lang: str, target_lang: str) -> str:
        params = {
            "client": "gtx",
            "sl": source_lang,
            "tl": target_lang,
            "dt": "t",
            "q": text,
        }
        if self._client is not None:
            response = self._client.get(GOOGLE_TRANSLATE_URL, params=params, timeout=self.timeout)
        else:
            with httpx.Client(timeout=self.timeout) as client:
                response = client.get(GOOGLE_TRANSLATE_URL, params=params)
        response.raise_for_status()
        try:
            payload = response.json()
        except ValueError:
            # レート制限時などは 200 で HTML が返る
            logger.warning(f"Non-JSON translation response: {response.text[:200]!r}")
            return ""
        return _join_segments(payload)


def _join_segments(payload: object) -> str:
    # 応答は [[["訳1", "原文1", ...], ["訳2", "原文2", ...]], ...] の形
    if not isinstance(payload, list) or not payload or not isinstance(payload[0], list):
        logger.warning(f"Unexpected translation response: {str(payload)[:200]}")
        return ""
    parts = [seg[0] for seg in payload[0] if isinstance(seg, list) and seg and isinstance(seg[0], str)]
    return "".join(parts).strip()


def create_translator(
    service: TranslationService | str,
    timeout: float = DEFAULT_TIMEOUT,
) -> TranslationProvider:
    """設定値から翻訳プロバイダを生成する.

    Raises:
        ValueError: 未知のサービス名の場合
    """
    service = TranslationService(service)
    if service is TranslationService.GOOGLE_TRANSLATE:
        return GoogleTranslator(timeout=timeout)
    raise ValueError(f"Unsupported translation service: {service!r}")
