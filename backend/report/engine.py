"""月報エンジン: 記録コレクションからの月次集計とエクスポート文字列の導出.

全て読み取り専用の純粋関数。対象月は (year, month) で受け取り、
画面側の「現在の月」状態は持たない。
"""

import calendar
from collections import defaultdict
from collections.abc import Iterable
from dataclasses import dataclass
from datetime import date, datetime

import pandas as pd

from backend.interfaces.record import ActivityRecord, Category

WEEKDAYS: str = "月火水木金土日"
"""date.weekday() の添字順（月曜始まり）."""

REPORT_SEPARATOR: str = "、"
"""月報テキストで同じ日の活動をつなぐ区切り."""


@dataclass(frozen=True)
class MonthlyStats:
    """月次集計。月報除外フラグ付きの記録は含めない."""

    active_days: int
    event_count: int
    total_participants: int


@dataclass(frozen=True)
class MonthlyReport:
    """1か月分の表示・エクスポート用データ一式."""

    year: int
    month: int
    stats: MonthlyStats
    records: list[ActivityRecord]
    report_text: str
    chat_text: str


def parse_record_date(value: str) -> date | None:
    """記録の日付を実日付として解釈する。解釈できなければ None."""
    try:
        return datetime.strptime(value.strip().replace("/", "-"), "%Y-%m-%d").date()
    except (AttributeError, ValueError):
        return None


def shift_month(year: int, month: int, delta: int) -> tuple[int, int]:
    """月送り。年をまたぐ場合も正しく繰り上げ・繰り下げる."""
    index = year * 12 + (month - 1) + delta
    new_year, new_month0 = divmod(index, 12)
    return new_year, new_month0 + 1


def days_in_month(year: int, month: int) -> int:
    return calendar.monthrange(year, month)[1]


def month_records(
    records: Iterable[ActivityRecord], year: int, month: int
) -> list[ActivityRecord]:
    """対象月の記録を古い順で返す。月報除外の記録も含む（一覧表示用）."""
    hits = []
    for record in records:
        d = parse_record_date(record.date)
        if d is not None and d.year == year and d.month == month:
            hits.append(record)
    return sorted(hits, key=lambda r: r.sort_key)


def _reportable(
    records: Iterable[ActivityRecord], year: int, month: int
) -> list[ActivityRecord]:
    return [r for r in month_records(records, year, month) if not r.exclude_from_report]


def monthly_stats(
    records: Iterable[ActivityRecord], year: int, month: int
) -> MonthlyStats:
    """活動日数・イベント数・延べ参加者数を集計する."""
    target = _reportable(records, year, month)
    if not target:
        return MonthlyStats(active_days=0, event_count=0, total_participants=0)

    df = pd.DataFrame(
        {
            "date": [parse_record_date(r.date) for r in target],
            "category": [r.category for r in target],
            "count": [r.count for r in target],
        }
    )
    return MonthlyStats(
        active_days=int(df["date"].nunique()),
        event_count=int((df["category"] == Category.EVENT.value).sum()),
        total_participants=int(df["count"].sum()),
    )


def _group_by_day(records: list[ActivityRecord]) -> dict[int, list[ActivityRecord]]:
    by_day: dict[int, list[ActivityRecord]] = defaultdict(list)
    for record in records:
        by_day[parse_record_date(record.date).day].append(record)
    return by_day


def report_text(records: Iterable[ActivityRecord], year: int, month: int) -> str:
    """表計算への貼り付け用テキスト.

    月の日数と同じ行数を出力する（記録のない日は空行）。
    行 d はその日の活動内容（場所があれば「（場所）」付き）を区切り文字でつなぐ。
    """
    by_day = _group_by_day(_reportable(records, year, month))
    lines = []
    for day in range(1, days_in_month(year, month) + 1):
        items = []
        for r in by_day.get(day, []):
            items.append(f"{r.content}（{r.place}）" if r.place else r.content)
        lines.append(REPORT_SEPARATOR.join(items))
    return "\n".join(lines)


def _chat_bullet(record: ActivityRecord) -> str:
    line = f"  ・{record.content}"
    if record.place:
        line += f" 📍{record.place}"
    if record.count:
        line += f" 👥{record.count}名"
    if record.note:
        line += f" 💬{record.note}"
    return line


def chat_text(records: Iterable[ActivityRecord], year: int, month: int) -> str:
    """チャット共有用の整形テキスト.

    見出し行の後、記録のない日も含め全日について日付見出しと
    箇条書きを出し、各日の後に空行を入れる。
    """
    by_day = _group_by_day(_reportable(records, year, month))
    lines = [f"📅 {year}年{month}月の活動記録", ""]
    for day in range(1, days_in_month(year, month) + 1):
        wd = WEEKDAYS[date(year, month, day).weekday()]
        lines.append(f"{month}/{day}（{wd}）")
        lines.extend(_chat_bullet(r) for r in by_day.get(day, []))
        lines.append("")
    return "\n".join(lines)


def build_monthly_report(
    records: Iterable[ActivityRecord], year: int, month: int
) -> MonthlyReport:
    """月報画面に必要な一式を導出する."""
    records = list(records)
    return MonthlyReport(
        year=year,
        month=month,
        stats=monthly_stats(records, year, month),
        records=month_records(records, year, month),
        report_text=report_text(records, year, month),
        chat_text=chat_text(records, year, month),
    )
