"""活動記録のドメインモデル（境界①）。

ワイヤ形式（ローカル保存・リモート同期で使うJSON）は camelCase の
``excludeFromReport`` を使い、Python側は snake_case で保持する。
"""

import re
from dataclasses import asdict, dataclass
from enum import StrEnum
from typing import Any


class Category(StrEnum):
    """活動カテゴリ（閉じた集合）。値は表形式ストアに保存される文字列。"""

    VISIT = "訪問"
    MEETING = "会議"
    EVENT = "イベント"
    DOCUMENT_PREP = "資料作成"
    ADMIN = "事務作業"
    OTHER = "その他"


CATEGORY_ICONS: dict[str, str] = {
    Category.VISIT: "🚶",
    Category.MEETING: "🤝",
    Category.EVENT: "🎪",
    Category.DOCUMENT_PREP: "📝",
    Category.ADMIN: "🗂️",
    Category.OTHER: "🌿",
}

_LEADING_INT = re.compile(r"^\s*([+-]?\d+)")


def coerce_count(value: Any) -> int:
    """参加人数を非負整数に正規化する。解釈できない値は 0。

    "12名" のような先頭が数字の文字列は先頭の整数を採用する。
    """
    if value is None or isinstance(value, bool):
        return 0
    if isinstance(value, int):
        return max(value, 0)
    if isinstance(value, float):
        if value != value:  # NaN
            return 0
        return max(int(value), 0)
    match = _LEADING_INT.match(str(value))
    if match is None:
        return 0
    return max(int(match.group(1)), 0)


def _text(value: Any) -> str:
    if value is None:
        return ""
    return str(value)


def _flag(value: Any) -> bool:
    # 表計算側では TRUE/FALSE の文字列で返ることがある
    if isinstance(value, str):
        return value.strip().lower() in ("true", "1", "yes")
    return bool(value)


@dataclass(frozen=True)
class ActivityRecord:
    """活動記録（ドメインモデル）。

    id は作成時に採番され以後不変。編集は同じ id の新しいインスタンスで
    丸ごと置き換える。
    """

    id: str
    date: str
    category: str
    content: str
    time: str = ""
    place: str = ""
    count: int = 0
    note: str = ""
    exclude_from_report: bool = False

    @property
    def sort_key(self) -> str:
        """日付+時刻の文字列連結。並び順の比較に使う。"""
        return f"{self.date}{self.time}"

    def to_wire(self) -> dict[str, Any]:
        """保存・同期用のJSON互換 dict に変換する。"""
        data = asdict(self)
        data["excludeFromReport"] = data.pop("exclude_from_report")
        return data

    @classmethod
    def from_wire(cls, data: dict[str, Any]) -> "ActivityRecord":
        """保存・同期用 dict から復元する。

        カテゴリの妥当性はここでは検証しない（生産側の責務）。
        ``count`` は整数に強制変換する。

        Raises:
            ValueError: id が空の場合
        """
        record_id = _text(data.get("id")).strip()
        if not record_id:
            raise ValueError("record id is empty")
        exclude = data.get("excludeFromReport", data.get("exclude_from_report"))
        return cls(
            id=record_id,
            date=_text(data.get("date")),
            time=_text(data.get("time")),
            category=_text(data.get("category")),
            content=_text(data.get("content")),
            place=_text(data.get("place")),
            count=coerce_count(data.get("count")),
            note=_text(data.get("note")),
            exclude_from_report=_flag(exclude),
        )
