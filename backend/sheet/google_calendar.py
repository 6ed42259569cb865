"""Google カレンダーを予定の取得元にする CalendarSourceInterface 実装."""

import logging
from datetime import datetime

from google.auth.exceptions import GoogleAuthError
from google.auth.transport.requests import Request
from google.oauth2.credentials import Credentials
from googleapiclient.discovery import build
from googleapiclient.errors import HttpError

from backend.errors import CalendarImportError
from backend.interfaces.sheet import CalendarEvent, CalendarSourceInterface

logger = logging.getLogger(__name__)

SCOPES = ["https://www.googleapis.com/auth/calendar.readonly"]


def _parse_start(start: dict) -> tuple[datetime, bool]:
    """イベントの start から (開始日時, 終日か) を得る. 日時はローカル時刻に揃える."""
    if "dateTime" in start:
        dt = datetime.fromisoformat(start["dateTime"])
        if dt.tzinfo is not None:
            dt = dt.astimezone().replace(tzinfo=None)
        return dt, False
    return datetime.fromisoformat(start["date"]), True


def to_calendar_event(item: dict) -> CalendarEvent:
    start, all_day = _parse_start(item.get("start", {}))
    return CalendarEvent(
        title=item.get("summary", ""),
        start=start,
        all_day=all_day,
        location=item.get("location", ""),
        description=item.get("description", ""),
    )


class GoogleCalendarSource(CalendarSourceInterface):
    """既定カレンダー（primary）の予定を読む.

    認可済みユーザーのトークンファイル（authorized user JSON）を使う。
    """

    def __init__(self, token_path: str, calendar_id: str = "primary") -> None:
        self._token_path = token_path
        self._calendar_id = calendar_id

    def _credentials(self) -> Credentials:
        try:
            creds = Credentials.from_authorized_user_file(self._token_path, SCOPES)
        except (OSError, ValueError) as e:
            raise CalendarImportError(f"カレンダーの認証情報を読み込めません: {e}") from e
        if not creds.valid and creds.expired and creds.refresh_token:
            try:
                creds.refresh(Request())
            except GoogleAuthError as e:
                raise CalendarImportError(f"カレンダーの認証を更新できません: {e}") from e
        return creds

    def get_events(self, start: datetime, end: datetime) -> list[CalendarEvent]:
        service = build(
            "calendar", "v3", credentials=self._credentials(), cache_discovery=False
        )
        events: list[CalendarEvent] = []
        page_token = None
        while True:
            try:
                response = self._list_page(service, start, end, page_token)
            except (HttpError, GoogleAuthError) as e:
                raise CalendarImportError(f"カレンダーの取得に失敗しました: {e}") from e
            events.extend(to_calendar_event(item) for item in response.get("items", []))
            page_token = response.get("nextPageToken")
            if not page_token:
                break
        logger.info("fetched %d calendar events", len(events))
        return events

    def _list_page(
        self, service, start: datetime, end: datetime, page_token: str | None
    ) -> dict:
        return (
            service.events()
            .list(
                calendarId=self._calendar_id,
                timeMin=start.astimezone().isoformat(),
                timeMax=end.astimezone().isoformat(),
                singleEvents=True,
                orderBy="startTime",
                pageToken=page_token,
            )
            .execute()
        )
