"""GeminiVoiceParser のユニットテスト。"""

import json
from unittest.mock import MagicMock

import pytest
import requests

from backend.errors import VoiceParseError
from backend.sheet.gemini import GeminiVoiceParser, build_prompt, strip_code_fence


def _response(text=None, status_code=200, body=None):
    response = MagicMock()
    response.status_code = status_code
    response.text = "error body"
    if body is None:
        body = {"candidates": [{"content": {"parts": [{"text": text}]}}]}
    response.json.return_value = body
    return response


def _parser(response=None, side_effect=None):
    session = MagicMock(spec=requests.Session)
    session.post.return_value = response
    if side_effect is not None:
        session.post.side_effect = side_effect
    return GeminiVoiceParser("test-key", model="m", timeout=3, session=session), session


class TestStripCodeFence:
    @pytest.mark.parametrize(
        "raw",
        [
            '{"a": 1}',
            '```json\n{"a": 1}\n```',
            '```\n{"a": 1}\n```',
            '  ```json {"a": 1} ```  ',
        ],
    )
    def test_variants(self, raw):
        assert json.loads(strip_code_fence(raw)) == {"a": 1}


class TestBuildPrompt:
    def test_contains_inputs_and_categories(self):
        prompt = build_prompt("明日の会議", "2025年3月10日 9時5分")
        assert "明日の会議" in prompt
        assert "2025年3月10日 9時5分" in prompt
        assert "訪問/会議/イベント/資料作成/事務作業/その他" in prompt


class TestGeminiVoiceParser:
    def test_parses_fenced_json(self):
        payload = {"date": "2025/03/11", "time": "10:00", "category": "会議",
                   "content": "予算会議", "place": "本庁舎", "count": 8, "note": ""}
        parser, session = _parser(_response(f"```json\n{json.dumps(payload)}\n```"))
        draft = parser.parse("明日10時から本庁舎で予算会議、8名", "2025年3月10日 9時5分")

        assert draft.date == "2025-03-11"
        assert draft.category == "会議"
        assert draft.place == "本庁舎"
        assert draft.count == 8
        assert session.post.call_args[1]["params"] == {"key": "test-key"}
        assert session.post.call_args[1]["timeout"] == 3
        assert session.post.call_args[0][0].endswith("/models/m:generateContent")

    def test_empty_content_falls_back_to_transcript(self):
        parser, _ = _parser(_response('{"date": "2025/03/10", "content": ""}'))
        assert parser.parse("事務作業", "x").content == "事務作業"

    def test_non_200(self):
        parser, _ = _parser(_response(status_code=403, body={}))
        with pytest.raises(VoiceParseError, match=r"Gemini API エラー \(403\)"):
            parser.parse("会議", "x")

    def test_missing_candidates(self):
        parser, _ = _parser(_response(body={"candidates": []}))
        with pytest.raises(VoiceParseError, match="解析結果を取得できませんでした"):
            parser.parse("会議", "x")

    def test_non_json_text(self):
        parser, _ = _parser(_response("すみません、わかりません"))
        with pytest.raises(VoiceParseError, match="解析エラー"):
            parser.parse("会議", "x")

    def test_network_error(self):
        parser, _ = _parser(side_effect=requests.Timeout("timed out"))
        with pytest.raises(VoiceParseError, match="解析エラー"):
            parser.parse("会議", "x")
