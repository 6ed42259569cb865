"""リモート表形式ストア（シートサービス）側の抽象インターフェース。

シートサービスは GET/POST 契約のリファレンス実装で、行ストア・
カレンダー取得元・音声解析器をこのインターフェース越しに使う。
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import datetime

from backend.interfaces.record import ActivityRecord
from backend.interfaces.remote_store import VoiceDraft


@dataclass(frozen=True)
class CalendarEvent:
    """外部カレンダーの予定1件。"""

    title: str
    start: datetime
    all_day: bool = False
    location: str = ""
    description: str = ""


class SheetStoreInterface(ABC):
    """行ストアの抽象インターフェース。"""

    @abstractmethod
    def get_records(self) -> list[ActivityRecord]:
        """全行を挿入順で取得する。"""
        ...

    @abstractmethod
    def replace_records(self, records: list[ActivityRecord]) -> int:
        """全行を削除してから与えられた行を書き込む（破壊的置換）。

        Returns:
            書き込んだ行数
        """
        ...

    @abstractmethod
    def append_records(self, records: list[ActivityRecord]) -> int:
        """既存行を残したまま末尾に追加する。

        Returns:
            追加した行数
        """
        ...

    @abstractmethod
    def spreadsheet_url(self) -> str:
        """ストアを人が開くためのURL（またはパス）。"""
        ...


class CalendarSourceInterface(ABC):
    """カレンダー予定の取得元。"""

    @abstractmethod
    def get_events(self, start: datetime, end: datetime) -> list[CalendarEvent]:
        """[start, end] に開始する予定を返す。"""
        ...


class VoiceParserInterface(ABC):
    """自然言語テキスト → レコード下書きの解析器。"""

    @abstractmethod
    def parse(self, transcript: str, current_date: str) -> VoiceDraft:
        """音声テキストを解析する。

        Raises:
            VoiceParseError: 解析できなかった場合（メッセージはユーザー向け）
        """
        ...
