"""表示時の並び替えと絞り込み。

コレクション自体の順序は不変条件ではない。読む側がここで並べる。
比較は ``date + time`` の文字列連結で行う。
"""

from collections.abc import Iterable

from backend.interfaces.record import ActivityRecord


def sort_records(
    records: Iterable[ActivityRecord], filtered: bool = False
) -> list[ActivityRecord]:
    """新しい順（既定）、絞り込み中は古い順に並べる。"""
    return sorted(records, key=lambda r: r.sort_key, reverse=not filtered)


def is_filter_active(category: str | None, keyword: str | None) -> bool:
    return bool(category) or bool(keyword and keyword.strip())


def matches(
    record: ActivityRecord, category: str | None, keyword: str | None
) -> bool:
    """カテゴリ一致かつキーワードが内容・場所・メモのいずれかに含まれるか。"""
    if category and record.category != category:
        return False
    key = (keyword or "").strip().lower()
    if not key:
        return True
    return any(
        key in text.lower() for text in (record.content, record.place, record.note)
    )


def filter_records(
    records: Iterable[ActivityRecord],
    category: str | None = None,
    keyword: str | None = None,
) -> list[ActivityRecord]:
    """絞り込み結果を表示順で返す。"""
    filtered = is_filter_active(category, keyword)
    hits = [r for r in records if matches(r, category, keyword)]
    return sort_records(hits, filtered=filtered)
