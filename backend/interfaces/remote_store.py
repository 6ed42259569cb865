"""リモート表形式ストアの抽象インターフェース（境界③）。

GET/POST の JSON 契約をここで型に落とす。レスポンスの形
（ラップ形式 / 旧形式の素の配列）の判別は ``RemoteSnapshot.from_payload``
で一度だけ行い、以降の層は形を意識しない。
"""

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import date
from typing import Any, Literal

from backend.interfaces.record import ActivityRecord, coerce_count

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RemoteSnapshot:
    """GET の結果。"""

    records: list[ActivityRecord]
    spreadsheet_url: str | None = None
    shape: Literal["wrapped", "legacy"] = "wrapped"

    @classmethod
    def from_payload(cls, payload: Any) -> "RemoteSnapshot":
        """GET レスポンスボディを正規化する。

        Raises:
            ValueError: 想定外の形、または records を持たないオブジェクトの場合
        """
        if isinstance(payload, list):
            rows, url, shape = payload, None, "legacy"
        elif isinstance(payload, dict) and payload.get("status") == "error":
            raise ValueError(str(payload.get("message") or "remote reported an error"))
        elif isinstance(payload, dict) and isinstance(payload.get("records"), list):
            rows = payload["records"]
            url = payload.get("spreadsheetUrl") or None
            shape = "wrapped"
        else:
            raise ValueError(
                f"unexpected remote payload: {type(payload).__name__}"
            )

        records = []
        for row in rows:
            if not isinstance(row, dict):
                continue
            try:
                records.append(ActivityRecord.from_wire(row))
            except ValueError:
                # id の無い空行
                logger.debug("skipping remote row without id: %r", row)
        return cls(records=records, spreadsheet_url=url, shape=shape)


@dataclass(frozen=True)
class RemoteAck:
    """POST の応答 ``{status, count, message?}``。"""

    status: str
    count: int = 0
    message: str | None = None

    @property
    def ok(self) -> bool:
        return self.status == "success"

    @classmethod
    def from_payload(cls, payload: Any) -> "RemoteAck":
        if not isinstance(payload, dict):
            return cls(status="error", message="invalid response")
        return cls(
            status=str(payload.get("status", "error")),
            count=coerce_count(payload.get("count")),
            message=payload.get("message"),
        )


@dataclass(frozen=True)
class VoiceDraft:
    """音声テキストから抽出したレコード下書き（部分的）。"""

    date: str = ""
    time: str = ""
    category: str = ""
    content: str = ""
    place: str = ""
    count: int = 0
    note: str = ""

    @classmethod
    def from_payload(cls, data: dict[str, Any]) -> "VoiceDraft":
        def text(key: str) -> str:
            value = data.get(key)
            return "" if value is None else str(value)

        return cls(
            # LLM は YYYY/MM/DD で返す
            date=text("date").replace("/", "-"),
            time=text("time"),
            category=text("category"),
            content=text("content"),
            place=text("place"),
            count=coerce_count(data.get("count")),
            note=text("note"),
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "date": self.date,
            "time": self.time,
            "category": self.category,
            "content": self.content,
            "place": self.place,
            "count": self.count,
            "note": self.note,
        }


class RemoteStoreInterface(ABC):
    """リモート表形式ストアの抽象インターフェース。

    実装は全て1回だけ試行する（リトライしない）。
    """

    @abstractmethod
    def fetch_snapshot(self) -> RemoteSnapshot:
        """全レコードを取得する。

        Raises:
            RemoteStoreError: 通信失敗・不正な応答
        """
        ...

    @abstractmethod
    def replace_records(self, records: list[ActivityRecord]) -> RemoteAck:
        """リモートの全行を削除し、与えられた全レコードを書き込む。

        Raises:
            RemoteStoreError: 通信失敗、またはリモートが error を返した場合
        """
        ...

    @abstractmethod
    def import_calendar(self, start: date, end: date) -> int:
        """期間内のカレンダー予定をリモート側に取り込ませる。

        Returns:
            取り込まれた件数

        Raises:
            CalendarImportError: リモートが error を返した場合
            RemoteStoreError: 通信失敗
        """
        ...

    @abstractmethod
    def parse_voice(self, transcript: str, current_date: str) -> VoiceDraft:
        """音声テキストの解析をリモートに代行させる。

        Raises:
            VoiceParseError: リモートが error を返した場合
            RemoteStoreError: 通信失敗
        """
        ...

    def close(self) -> None:
        """保持している接続を解放する。既定では何もしない。"""
