"""テスト共通のフェイク実装。"""

import time

import pytest

from backend.errors import RemoteStoreError
from backend.interfaces.local_store import LocalStoreInterface
from backend.interfaces.record import ActivityRecord
from backend.interfaces.remote_store import (
    RemoteAck,
    RemoteSnapshot,
    RemoteStoreInterface,
    VoiceDraft,
)

SPREADSHEET_URL = "https://sheet.example/1"


class InMemoryLocalStore(LocalStoreInterface):
    """メモリ上の LocalStoreInterface 実装。"""

    def __init__(self, records=None, endpoint_url=None):
        self.records = list(records or [])
        self.endpoint_url = endpoint_url
        self.save_count = 0

    def load_records(self) -> list[ActivityRecord]:
        return list(self.records)

    def save_records(self, records: list[ActivityRecord]) -> None:
        self.records = list(records)
        self.save_count += 1

    def load_endpoint_url(self) -> str | None:
        return self.endpoint_url

    def save_endpoint_url(self, url: str | None) -> None:
        self.endpoint_url = url


class FakeRemote(RemoteStoreInterface):
    """リモート表形式ストアのフェイク。行は wire 形式の dict で保持する。"""

    def __init__(self):
        self.rows: list[dict] = []
        self.pushes: list[list[str]] = []
        self.fetch_calls = 0
        self.fail_fetch = False
        self.payload = None
        self.fail_push = False
        self.push_delay = 0.0
        self.calendar_rows: list[dict] = []
        self.calendar_error: Exception | None = None
        self.calendar_calls: list[tuple] = []
        self.voice_calls: list[tuple[str, str]] = []
        self.voice_error: Exception | None = None

    def fetch_snapshot(self) -> RemoteSnapshot:
        self.fetch_calls += 1
        if self.fail_fetch:
            raise RemoteStoreError("network down")
        payload = self.payload
        if payload is None:
            payload = {"records": list(self.rows), "spreadsheetUrl": SPREADSHEET_URL}
        try:
            return RemoteSnapshot.from_payload(payload)
        except ValueError as e:
            raise RemoteStoreError(str(e)) from e

    def replace_records(self, records: list[ActivityRecord]) -> RemoteAck:
        if self.push_delay:
            time.sleep(self.push_delay)
        if self.fail_push:
            raise RemoteStoreError("write failed")
        self.rows = [r.to_wire() for r in records]
        self.pushes.append([r.id for r in records])
        return RemoteAck(status="success", count=len(records))

    def import_calendar(self, start, end) -> int:
        self.calendar_calls.append((start, end))
        if self.calendar_error is not None:
            raise self.calendar_error
        self.rows.extend(self.calendar_rows)
        return len(self.calendar_rows)

    def parse_voice(self, transcript: str, current_date: str) -> VoiceDraft:
        self.voice_calls.append((transcript, current_date))
        if self.voice_error is not None:
            raise self.voice_error
        return VoiceDraft(category="会議", content=transcript)


@pytest.fixture
def memory_store():
    """エンドポイント設定済みのインメモリ Local Store."""
    return InMemoryLocalStore(endpoint_url="https://remote.example/exec")


@pytest.fixture
def fake_remote():
    return FakeRemote()
