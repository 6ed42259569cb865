"""外部カレンダー（Google カレンダー）の予定作成URL."""

from datetime import datetime, timedelta
from urllib.parse import urlencode

from backend.interfaces.record import ActivityRecord
from backend.report.engine import parse_record_date

CALENDAR_RENDER_URL = "https://www.google.com/calendar/render"


def build_event_url(record: ActivityRecord) -> str:
    """記録から予定作成URLを組み立てる.

    時刻ありは開始から1時間、時刻なしは終日予定（翌日終了）。
    日付が無い・解釈できない場合は空文字を返す。
    """
    day = parse_record_date(record.date)
    if day is None:
        return ""
    try:
        if record.time:
            start = datetime.combine(day, datetime.strptime(record.time, "%H:%M").time())
            end = start + timedelta(hours=1)
            dates = f"{start:%Y%m%dT%H%M%S}/{end:%Y%m%dT%H%M%S}"
        else:
            dates = f"{day:%Y%m%d}/{day + timedelta(days=1):%Y%m%d}"
    except ValueError:
        return ""

    params = {
        "action": "TEMPLATE",
        "text": f"【{record.category}】{record.content}",
        "dates": dates,
        "details": f"{record.note}\n\n[カテゴリー] {record.category}",
        "location": record.place,
    }
    return f"{CALENDAR_RENDER_URL}?{urlencode(params)}"
