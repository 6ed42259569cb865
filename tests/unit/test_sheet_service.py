"""シートサービス（リモート表形式ストアのリファレンス実装）のユニットテスト。"""

from datetime import datetime, timedelta, timezone
from unittest.mock import MagicMock

import pytest
from google.auth.exceptions import TransportError

from backend.errors import CalendarImportError, VoiceParseError
from backend.interfaces.record import ActivityRecord
from backend.interfaces.remote_store import VoiceDraft
from backend.interfaces.sheet import (
    CalendarEvent,
    CalendarSourceInterface,
    VoiceParserInterface,
)
from backend.sheet import google_calendar
from backend.sheet.google_calendar import GoogleCalendarSource, to_calendar_event
from backend.sheet.service import SheetService, event_to_record
from backend.sheet.sqlite import SqliteSheetStore


@pytest.fixture
def store(tmp_path):
    return SqliteSheetStore(str(tmp_path / "sheet.db"))


@pytest.fixture
def calendar_source():
    return MagicMock(spec=CalendarSourceInterface)


@pytest.fixture
def voice_parser():
    return MagicMock(spec=VoiceParserInterface)


@pytest.fixture
def service(store, calendar_source, voice_parser):
    return SheetService(store, calendar_source, voice_parser)


def _wire(record_id, **fields):
    row = {"id": record_id, "date": "2025-03-01", "category": "会議", "content": "a"}
    row.update(fields)
    return row


class TestSqliteSheetStore:
    def test_replace_then_get_keeps_order(self, store):
        records = [
            ActivityRecord(id="b", date="2025-03-02", category="会議", content="x"),
            ActivityRecord(id="a", date="2025-03-01", category="訪問", content="y",
                           count=3, exclude_from_report=True),
        ]
        assert store.replace_records(records) == 2
        assert store.get_records() == records

    def test_replace_is_destructive(self, store):
        store.replace_records(
            [ActivityRecord(id="1", date="2025-03-01", category="会議", content="x")]
        )
        store.replace_records([])
        assert store.get_records() == []

    def test_append_keeps_existing(self, store):
        first = ActivityRecord(id="1", date="2025-03-01", category="会議", content="x")
        second = ActivityRecord(id="2", date="2025-03-02", category="会議", content="y")
        store.replace_records([first])
        store.append_records([second])
        assert [r.id for r in store.get_records()] == ["1", "2"]

    def test_spreadsheet_url_is_file_uri(self, store):
        assert store.spreadsheet_url().startswith("file://")


class TestReplace:
    def test_accepts_bare_array(self, service, store):
        result = service.handle_post([_wire("1"), _wire("2")])
        assert result == {"status": "success", "count": 2}
        assert [r.id for r in store.get_records()] == ["1", "2"]

    def test_accepts_wrapped_records(self, service, store):
        result = service.handle_post({"records": [_wire("1", excludeFromReport=True)]})
        assert result["count"] == 1
        assert store.get_records()[0].exclude_from_report is True

    def test_rows_without_id_skipped(self, service, store):
        service.handle_post([_wire("1"), _wire(""), "junk"])
        assert [r.id for r in store.get_records()] == ["1"]

    def test_invalid_body_is_error_response(self, service, store):
        service.handle_post([_wire("1")])
        result = service.handle_post("nonsense")
        assert result["status"] == "error"
        assert [r.id for r in store.get_records()] == ["1"]

    def test_snapshot(self, service):
        service.handle_post([_wire("1", count="4")])
        snapshot = service.snapshot()
        assert snapshot["records"][0]["count"] == 4
        assert snapshot["records"][0]["excludeFromReport"] is False
        assert snapshot["spreadsheetUrl"].startswith("file://")


class TestImport:
    def test_appends_events_as_records(self, service, store, calendar_source):
        store.replace_records(
            [ActivityRecord(id="keep", date="2025-03-01", category="会議", content="x")]
        )
        calendar_source.get_events.return_value = [
            CalendarEvent(title="総会", start=datetime(2025, 3, 10, 14, 0),
                          location="公民館", description="年次総会"),
            CalendarEvent(title="祝日", start=datetime(2025, 3, 20), all_day=True),
        ]
        result = service.handle_post(
            {"action": "import", "startDate": "2025-03-01", "endDate": "2025-03-31"}
        )
        assert result == {"status": "success", "count": 2}
        calendar_source.get_events.assert_called_once_with(
            datetime(2025, 3, 1, 0, 0), datetime(2025, 3, 31, 23, 59, 59)
        )
        records = store.get_records()
        assert [r.content for r in records] == ["x", "総会", "祝日"]
        assert records[1].time == "14:00"
        assert records[1].category == "その他"
        assert records[2].time == ""

    def test_bad_dates(self, service, calendar_source):
        result = service.handle_post({"action": "import", "startDate": "x", "endDate": None})
        assert result["status"] == "error"
        calendar_source.get_events.assert_not_called()

    def test_unexpected_source_error_is_error_response(self, service, calendar_source):
        calendar_source.get_events.side_effect = TransportError(
            "connection reset while refreshing token"
        )
        result = service.handle_post(
            {"action": "import", "startDate": "2025-03-01", "endDate": "2025-03-31"}
        )
        assert result["status"] == "error"
        assert "connection reset" in result["message"]

    def test_no_calendar_source(self, store):
        result = SheetService(store).handle_post(
            {"action": "import", "startDate": "2025-03-01", "endDate": "2025-03-31"}
        )
        assert result["status"] == "error"
        assert "カレンダー連携" in result["message"]


class TestParseVoice:
    def test_delegates_to_parser(self, service, voice_parser):
        voice_parser.parse.return_value = VoiceDraft(date="2025-03-11", content="会議")
        result = service.handle_post(
            {"action": "parseVoice", "transcript": "明日会議", "currentDate": "2025年3月10日 9時5分"}
        )
        voice_parser.parse.assert_called_once_with("明日会議", "2025年3月10日 9時5分")
        assert result["status"] == "success"
        assert result["data"]["date"] == "2025-03-11"

    def test_parser_error_message(self, service, voice_parser):
        voice_parser.parse.side_effect = VoiceParseError("解析エラー: boom")
        result = service.handle_post({"action": "parseVoice", "transcript": "x"})
        assert result == {"status": "error", "message": "解析エラー: boom"}

    def test_unexpected_parser_error_is_error_response(self, service, voice_parser):
        voice_parser.parse.side_effect = RuntimeError("quota exceeded")
        result = service.handle_post({"action": "parseVoice", "transcript": "x"})
        assert result == {"status": "error", "message": "quota exceeded"}

    def test_without_api_key(self, store):
        result = SheetService(store).handle_post({"action": "parseVoice", "transcript": "x"})
        assert result["status"] == "error"
        assert "GEMINI_API_KEY" in result["message"]


class TestCalendarEventConversion:
    def test_all_day_item(self):
        event = to_calendar_event({"summary": "祝日", "start": {"date": "2025-03-20"}})
        assert event.all_day is True
        assert event_to_record(event).date == "2025-03-20"

    def test_timed_item_converted_to_local_time(self):
        jst = timezone(timedelta(hours=9))
        item = {
            "summary": "総会",
            "location": "公民館",
            "start": {"dateTime": "2025-03-10T14:00:00+09:00"},
        }
        event = to_calendar_event(item)
        expected = datetime(2025, 3, 10, 14, 0, tzinfo=jst).astimezone().replace(tzinfo=None)
        assert event.start == expected
        assert event.all_day is False
        assert event.location == "公民館"

    def test_event_to_record_fresh_ids(self):
        event = CalendarEvent(title="a", start=datetime(2025, 3, 1, 9, 0))
        assert event_to_record(event).id != event_to_record(event).id


class TestGoogleCalendarSource:
    @pytest.fixture
    def source(self, monkeypatch):
        monkeypatch.setattr(google_calendar, "build", MagicMock())
        source = GoogleCalendarSource("token.json")
        monkeypatch.setattr(source, "_credentials", MagicMock())
        return source

    def test_transport_error_wrapped(self, source, monkeypatch):
        monkeypatch.setattr(
            source, "_list_page", MagicMock(side_effect=TransportError("connection reset"))
        )
        with pytest.raises(CalendarImportError, match="connection reset"):
            source.get_events(datetime(2025, 3, 1), datetime(2025, 3, 31, 23, 59, 59))

    def test_follows_page_tokens(self, source, monkeypatch):
        pages = [
            {"items": [{"summary": "a", "start": {"date": "2025-03-01"}}],
             "nextPageToken": "p2"},
            {"items": [{"summary": "b", "start": {"date": "2025-03-02"}}]},
        ]
        list_page = MagicMock(side_effect=pages)
        monkeypatch.setattr(source, "_list_page", list_page)
        events = source.get_events(datetime(2025, 3, 1), datetime(2025, 3, 31))
        assert [e.title for e in events] == ["a", "b"]
        assert list_page.call_args_list[1][0][3] == "p2"
