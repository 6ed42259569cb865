"""Gemini API による音声テキスト解析."""

import json
import logging
import re
from dataclasses import replace

import requests

from backend.errors import VoiceParseError
from backend.interfaces.record import Category
from backend.interfaces.remote_store import VoiceDraft
from backend.interfaces.sheet import VoiceParserInterface

logger = logging.getLogger(__name__)

GEMINI_ENDPOINT = (
    "https://generativelanguage.googleapis.com/v1beta/models/{model}:generateContent"
)

_CODE_FENCE = re.compile(r"^```(?:json)?\s*|\s*```$")

PROMPT_TEMPLATE = """次の音声入力テキストから活動記録の項目を抜き出し、JSONだけを返してください。

音声入力: {transcript}
現在の日時: {current_date}

項目:
- date: YYYY/MM/DD。「今日」「昨日」「明日」などの相対表現は現在の日時から計算する。
  年が省略されていれば現在の年、日付の言及がなければ今日の日付。
- time: HH:MM（24時間表記）。言及がなければ現在の時刻。
- category: {categories} のいずれか。内容から最も近いものを選ぶ。
- content: 活動内容の簡潔な説明（50文字以内）
- place: 場所。言及がなければ空文字。
- count: 参加人数（数字のみ）。言及がなければ 0。
- note: 補足のメモ。なければ空文字。

出力形式:
{{"date": "YYYY/MM/DD", "time": "HH:MM", "category": "カテゴリ名", "content": "活動内容", "place": "場所", "count": 0, "note": "メモ"}}"""


def build_prompt(transcript: str, current_date: str) -> str:
    categories = "/".join(c.value for c in Category)
    return PROMPT_TEMPLATE.format(
        transcript=transcript, current_date=current_date, categories=categories
    )


def strip_code_fence(text: str) -> str:
    """```json ... ``` で囲まれた応答から中身を取り出す."""
    return _CODE_FENCE.sub("", text.strip()).strip()


class GeminiVoiceParser(VoiceParserInterface):
    """Gemini generateContent API を使う VoiceParserInterface 実装."""

    def __init__(
        self,
        api_key: str,
        model: str = "gemini-2.0-flash",
        timeout: float = 30.0,
        session: requests.Session | None = None,
    ) -> None:
        self._api_key = api_key
        self._model = model
        self._timeout = timeout
        self._session = session or requests.Session()

    def parse(self, transcript: str, current_date: str) -> VoiceDraft:
        body = {"contents": [{"parts": [{"text": build_prompt(transcript, current_date)}]}]}
        try:
            response = self._session.post(
                GEMINI_ENDPOINT.format(model=self._model),
                params={"key": self._api_key},
                json=body,
                timeout=self._timeout,
            )
        except requests.RequestException as e:
            raise VoiceParseError(f"解析エラー: {e}") from e

        if response.status_code != 200:
            raise VoiceParseError(
                f"Gemini API エラー ({response.status_code}): {response.text}"
            )

        try:
            text = response.json()["candidates"][0]["content"]["parts"][0]["text"]
        except (ValueError, KeyError, IndexError, TypeError):
            raise VoiceParseError("解析結果を取得できませんでした") from None

        try:
            parsed = json.loads(strip_code_fence(text))
        except json.JSONDecodeError as e:
            logger.debug("unparseable model output: %r", text)
            raise VoiceParseError(f"解析エラー: {e}") from e
        if not isinstance(parsed, dict):
            raise VoiceParseError("解析結果を取得できませんでした")

        draft = VoiceDraft.from_payload(parsed)
        if not draft.content:
            draft = replace(draft, content=transcript)
        return draft
