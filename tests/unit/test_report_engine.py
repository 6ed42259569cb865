"""月報エンジンのユニットテスト。"""

import pytest

from backend.interfaces.record import ActivityRecord
from backend.report.engine import (
    build_monthly_report,
    chat_text,
    month_records,
    monthly_stats,
    report_text,
    shift_month,
)


def _rec(record_id, date, category="会議", content="活動", time="", place="",
         count=0, note="", exclude=False):
    return ActivityRecord(
        id=record_id, date=date, time=time, category=category, content=content,
        place=place, count=count, note=note, exclude_from_report=exclude,
    )


class TestMonthlyStats:
    def test_excluded_records_not_counted(self):
        """除外フラグ付きの記録は集計に含めない。"""
        records = [
            _rec("1", "2025-03-01", category="イベント", count=5),
            _rec("2", "2025-03-01", category="訪問", count=3, exclude=True),
        ]
        stats = monthly_stats(records, 2025, 3)
        assert stats.active_days == 1
        assert stats.event_count == 1
        assert stats.total_participants == 5

    def test_distinct_days_and_other_months_ignored(self):
        records = [
            _rec("1", "2025-03-01", count=2),
            _rec("2", "2025-03-01", category="イベント", count=10),
            _rec("3", "2025-03-15", category="イベント"),
            _rec("4", "2025-04-01", category="イベント", count=100),
            _rec("5", "2024-03-01", count=100),
        ]
        stats = monthly_stats(records, 2025, 3)
        assert stats.active_days == 2
        assert stats.event_count == 2
        assert stats.total_participants == 12

    def test_empty_month(self):
        stats = monthly_stats([], 2025, 3)
        assert (stats.active_days, stats.event_count, stats.total_participants) == (0, 0, 0)

    def test_unparseable_date_ignored(self):
        records = [_rec("1", "不明", count=4), _rec("2", "2025/03/02", count=1)]
        stats = monthly_stats(records, 2025, 3)
        assert stats.active_days == 1
        assert stats.total_participants == 1


class TestMonthRecords:
    def test_oldest_first_and_includes_excluded(self):
        records = [
            _rec("late", "2025-03-20"),
            _rec("excluded", "2025-03-05", exclude=True),
            _rec("pm", "2025-03-05", time="15:00"),
            _rec("other", "2025-02-28"),
        ]
        assert [r.id for r in month_records(records, 2025, 3)] == [
            "excluded", "pm", "late",
        ]


class TestReportText:
    @pytest.mark.parametrize(
        ("year", "month", "lines"),
        [(2025, 2, 28), (2024, 2, 29), (2025, 3, 31), (2025, 4, 30)],
    )
    def test_line_count_equals_days_in_month(self, year, month, lines):
        assert len(report_text([], year, month).split("\n")) == lines

    def test_items_joined_per_day(self):
        records = [
            _rec("1", "2025-03-02", content="定例会", place="公民館", time="10:00"),
            _rec("2", "2025-03-02", content="資料整理", time="14:00"),
            _rec("3", "2025-03-02", content="除外分", exclude=True),
            _rec("4", "2025-03-31", content="月末会議"),
        ]
        lines = report_text(records, 2025, 3).split("\n")
        assert lines[0] == ""
        assert lines[1] == "定例会（公民館）、資料整理"
        assert lines[30] == "月末会議"
        assert all(line == "" for line in lines[2:30])


class TestChatText:
    def test_format(self):
        records = [
            _rec("1", "2025-03-01", content="地域清掃", place="河川敷", count=12,
                 note="雨天中止"),
            _rec("2", "2025-03-01", content="打ち合わせ"),
            _rec("3", "2025-03-03", content="除外分", exclude=True),
        ]
        lines = chat_text(records, 2025, 3).split("\n")
        assert lines[:7] == [
            "📅 2025年3月の活動記録",
            "",
            "3/1（土）",
            "  ・地域清掃 📍河川敷 👥12名 💬雨天中止",
            "  ・打ち合わせ",
            "",
            "3/2（日）",
        ]
        assert "3/3（月）" in lines
        assert "  ・除外分" not in lines

    def test_every_day_has_heading(self):
        text = chat_text([], 2025, 2)
        assert text.count("（") == 28
        assert "2/28（金）" in text


class TestShiftMonth:
    @pytest.mark.parametrize(
        ("year", "month", "delta", "expected"),
        [
            (2025, 1, -1, (2024, 12)),
            (2024, 12, 1, (2025, 1)),
            (2025, 3, 1, (2025, 4)),
            (2025, 3, -14, (2024, 1)),
        ],
    )
    def test_wraps_year(self, year, month, delta, expected):
        assert shift_month(year, month, delta) == expected


def test_build_monthly_report_bundles_everything():
    records = [_rec("1", "2025-03-10", category="イベント", count=5)]
    report = build_monthly_report(records, 2025, 3)
    assert (report.year, report.month) == (2025, 3)
    assert report.stats.event_count == 1
    assert [r.id for r in report.records] == ["1"]
    assert report.report_text.split("\n")[9] == "活動"
    assert "3/10（月）" in report.chat_text
