"""レコード候補の検証と正規化。

UI（API）から受け取った候補 dict を pydantic モデルで正規化し、
必須項目チェックの後 ActivityRecord を組み立てる。
pydantic の ValidationError は backend.errors の階層に変換して送出する。
"""

import uuid
from collections.abc import Callable, Mapping
from datetime import datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic import ValidationError as PydanticValidationError

from backend.errors import InvalidFieldValue, MissingRequiredField
from backend.interfaces.record import ActivityRecord, Category, coerce_count

REQUIRED_FIELDS: tuple[str, ...] = ("date", "category", "content")

_CATEGORY_VALUES = frozenset(c.value for c in Category)

# 英語名での指定も受け付ける
_CATEGORY_ALIASES: dict[str, Category] = {
    "visit": Category.VISIT,
    "meeting": Category.MEETING,
    "event": Category.EVENT,
    "document-prep": Category.DOCUMENT_PREP,
    "admin": Category.ADMIN,
    "other": Category.OTHER,
}


def new_record_id() -> str:
    """新しいレコードIDを採番する。"""
    return str(uuid.uuid4())


class RecordCandidate(BaseModel):
    """検証前のレコード候補。文字列項目は全て trim される。"""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    date: str = ""
    time: str = ""
    category: str = ""
    content: str = ""
    place: str = ""
    count: int = 0
    note: str = ""
    exclude_from_report: bool = Field(default=False, alias="excludeFromReport")

    @field_validator(
        "date", "time", "category", "content", "place", "note", mode="before"
    )
    @classmethod
    def strip_text(cls, v: Any) -> str:
        if v is None:
            return ""
        return str(v).strip()

    @field_validator("count", mode="before")
    @classmethod
    def normalize_count(cls, v: Any) -> int:
        return coerce_count(v)

    @field_validator("exclude_from_report", mode="before")
    @classmethod
    def default_flag(cls, v: Any) -> Any:
        return False if v is None or v == "" else v

    @field_validator("date", mode="after")
    @classmethod
    def check_date(cls, v: str) -> str:
        if not v:
            return v
        try:
            parsed = datetime.strptime(v.replace("/", "-"), "%Y-%m-%d")
        except ValueError:
            raise ValueError("日付は YYYY-MM-DD 形式で入力してください") from None
        return parsed.strftime("%Y-%m-%d")

    @field_validator("time", mode="after")
    @classmethod
    def check_time(cls, v: str) -> str:
        if not v:
            return v
        try:
            parsed = datetime.strptime(v, "%H:%M")
        except ValueError:
            raise ValueError("時刻は HH:MM 形式で入力してください") from None
        return parsed.strftime("%H:%M")

    @field_validator("category", mode="after")
    @classmethod
    def check_category(cls, v: str) -> str:
        if not v:
            return v
        if v in _CATEGORY_VALUES:
            return v
        alias = _CATEGORY_ALIASES.get(v.lower())
        if alias is None:
            raise ValueError(f"不明なカテゴリです: {v}")
        return alias.value


def _to_invalid_field(exc: PydanticValidationError) -> InvalidFieldValue:
    error = exc.errors()[0]
    field = str(error["loc"][0]) if error["loc"] else "record"
    message = error["msg"].removeprefix("Value error, ")
    return InvalidFieldValue(field, message)


def validate(
    candidate: Mapping[str, Any],
    record_id: str | None = None,
    id_factory: Callable[[], str] = new_record_id,
) -> ActivityRecord:
    """レコード候補を検証し ActivityRecord を返す。

    Args:
        candidate: UI から受け取った候補（camelCase / snake_case どちらも可）
        record_id: 編集時の既存ID。None の場合は作成とみなし新規採番する
        id_factory: 新規ID生成関数（テスト用に差し替え可能）

    Raises:
        MissingRequiredField: 日付・カテゴリ・活動内容のいずれかが空
        InvalidFieldValue: 日付・時刻・カテゴリの形式が不正
    """
    try:
        parsed = RecordCandidate.model_validate(dict(candidate))
    except PydanticValidationError as e:
        raise _to_invalid_field(e) from e

    missing = [name for name in REQUIRED_FIELDS if not getattr(parsed, name)]
    if missing:
        raise MissingRequiredField(missing)

    return ActivityRecord(
        id=record_id if record_id is not None else id_factory(),
        date=parsed.date,
        time=parsed.time,
        category=parsed.category,
        content=parsed.content,
        place=parsed.place,
        count=parsed.count,
        note=parsed.note,
        exclude_from_report=parsed.exclude_from_report,
    )


def default_draft(now: datetime | None = None) -> dict[str, Any]:
    """入力フォームの初期値。日付・時刻は現在時刻。"""
    now = now or datetime.now()
    return {
        "date": now.strftime("%Y-%m-%d"),
        "time": now.strftime("%H:%M"),
        "category": "",
        "content": "",
        "place": "",
        "count": 0,
        "note": "",
        "excludeFromReport": False,
    }
