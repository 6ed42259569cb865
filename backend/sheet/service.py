"""シートサービスの POST ディスパッチ.

ボディの形で処理を振り分ける:
- ``{"action": "parseVoice", ...}`` → 音声テキスト解析の代行
- ``{"action": "import", ...}`` → カレンダー予定の取り込み（追記）
- 配列 または ``{"records": [...]}`` → 全行の破壊的置換

失敗は例外ではなく ``{"status": "error", "message": ...}`` で返す。
"""

import logging
import uuid
from datetime import date, datetime, time
from typing import Any

from backend.errors import ActivityLogError, CalendarImportError, VoiceParseError
from backend.interfaces.record import ActivityRecord, Category
from backend.interfaces.sheet import (
    CalendarEvent,
    CalendarSourceInterface,
    SheetStoreInterface,
    VoiceParserInterface,
)

logger = logging.getLogger(__name__)

IMPORT_CATEGORY = Category.OTHER


def event_to_record(event: CalendarEvent) -> ActivityRecord:
    """カレンダー予定を記録行に変換する。ID は新規採番."""
    return ActivityRecord(
        id=str(uuid.uuid4()),
        date=event.start.strftime("%Y-%m-%d"),
        time="" if event.all_day else event.start.strftime("%H:%M"),
        category=IMPORT_CATEGORY.value,
        content=event.title,
        place=event.location,
        count=0,
        note=event.description,
    )


class SheetService:
    """リモート表形式ストア契約のリファレンス実装."""

    def __init__(
        self,
        store: SheetStoreInterface,
        calendar_source: CalendarSourceInterface | None = None,
        voice_parser: VoiceParserInterface | None = None,
    ) -> None:
        self._store = store
        self._calendar_source = calendar_source
        self._voice_parser = voice_parser

    def snapshot(self) -> dict[str, Any]:
        """GET の応答."""
        return {
            "records": [r.to_wire() for r in self._store.get_records()],
            "spreadsheetUrl": self._store.spreadsheet_url(),
        }

    def handle_post(self, body: Any) -> dict[str, Any]:
        """POST の応答."""
        try:
            if isinstance(body, dict) and body.get("action") == "parseVoice":
                return self.parse_voice(
                    str(body.get("transcript") or ""), str(body.get("currentDate") or "")
                )
            if isinstance(body, dict) and body.get("action") == "import":
                count = self.import_calendar(body.get("startDate"), body.get("endDate"))
                return {"status": "success", "count": count}
            return {"status": "success", "count": self.replace(body)}
        except (ActivityLogError, ValueError) as e:
            logger.warning("sheet request failed: %s", e)
            return {"status": "error", "message": str(e)}
        except Exception as e:
            # 想定外の失敗もエラー応答で返す
            logger.exception("unexpected error in sheet request")
            return {"status": "error", "message": str(e) or type(e).__name__}

    def replace(self, body: Any) -> int:
        """全行を削除し、ボディの行を書き込む.

        Raises:
            ValueError: ボディが配列でも records 付きオブジェクトでもない
        """
        if isinstance(body, list):
            rows = body
        elif isinstance(body, dict) and isinstance(body.get("records", []), list):
            rows = body.get("records", [])
        else:
            raise ValueError("records must be an array")

        records = [
            ActivityRecord.from_wire(row)
            for row in rows
            if isinstance(row, dict) and str(row.get("id") or "").strip()
        ]
        return self._store.replace_records(records)

    def import_calendar(self, start: Any, end: Any) -> int:
        """[start 0:00, end 23:59:59] に開始する予定を追記する.

        Raises:
            CalendarImportError: 取得元が未設定・期間が不正
        """
        if self._calendar_source is None:
            raise CalendarImportError("カレンダー連携が設定されていません")
        try:
            start_day = date.fromisoformat(str(start))
            end_day = date.fromisoformat(str(end))
        except ValueError as e:
            raise CalendarImportError(f"期間の形式が不正です: {e}") from e

        events = self._calendar_source.get_events(
            datetime.combine(start_day, time.min),
            datetime.combine(end_day, time(23, 59, 59)),
        )
        return self._store.append_records([event_to_record(e) for e in events])

    def parse_voice(self, transcript: str, current_date: str) -> dict[str, Any]:
        if self._voice_parser is None:
            raise VoiceParseError(
                "Gemini APIキーが設定されていません。"
                "環境変数 GEMINI_API_KEY を設定してください。"
            )
        draft = self._voice_parser.parse(transcript, current_date)
        return {"status": "success", "data": draft.to_dict()}
