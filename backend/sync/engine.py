"""Sync Engine: ローカルコレクションとリモート表形式ストアの同期.

競合解決はコレクション全体の上書き（後勝ち）のみ。
レコード単位のマージやタイムスタンプ比較は行わない。
複数端末で同時に編集すると片方の変更が失われうる（既知の制約）。
"""

import asyncio
import logging
from collections.abc import Callable
from dataclasses import dataclass
from datetime import date, datetime

from backend.errors import (
    CalendarImportError,
    EndpointNotConfigured,
    FetchError,
    InvalidFieldValue,
    MissingRequiredField,
    RemoteStoreError,
    SyncError,
    VoiceParseError,
)
from backend.interfaces.record import ActivityRecord
from backend.interfaces.remote_store import (
    RemoteAck,
    RemoteSnapshot,
    RemoteStoreInterface,
    VoiceDraft,
)
from backend.records.ordering import sort_records
from backend.records.state import ActivityLogState
from backend.sync.debounce import ScheduledTask

logger = logging.getLogger(__name__)

RemoteFactory = Callable[[str], RemoteStoreInterface]

DEFAULT_PUSH_DELAY: float = 2.0
"""最後の変更から push までの静穏期間（秒）."""


@dataclass(frozen=True)
class PullResult:
    """pull の結果."""

    records: list[ActivityRecord]
    spreadsheet_url: str | None


def format_current_date(now: datetime) -> str:
    """音声解析に渡す現在日時の文脈文字列."""
    return (
        f"{now.year}年{now.month}月{now.day}日 "
        f"{now.hour}時{now.minute}分"
    )


class SyncEngine:
    """ローカル状態とリモートストアの同期を担う.

    - push: 変更通知でデバウンスを張り、静穏期間後にコレクション全体を送る。
      同時に送信中の push は最大1本で、送信中に来た要求は
      最新状態での1回の追加 push にまとめる。
    - pull: エンドポイント設定時（起動時・設定保存時）に1回、
      リモートの内容でローカルを丸ごと置き換える。

    push / pull の失敗はログに残すだけで、呼び出し元には伝えない。
    """

    def __init__(
        self,
        state: ActivityLogState,
        remote_factory: RemoteFactory,
        delay: float = DEFAULT_PUSH_DELAY,
    ) -> None:
        self._state = state
        self._remote_factory = remote_factory
        self._debounce = ScheduledTask(delay, self._debounced_push)
        self._in_flight: asyncio.Future | None = None
        self._push_again = False
        self._dirty = False
        self.spreadsheet_url: str | None = None
        state.add_listener(self.notify_changed)

    @property
    def push_pending(self) -> bool:
        return self._debounce.pending or self._dirty

    # ---------- push ----------

    def notify_changed(self) -> None:
        """ローカルの変更通知。エンドポイント未設定なら何もしない."""
        if not self._state.endpoint_url:
            return
        self._dirty = True
        try:
            self._debounce.arm()
        except RuntimeError:
            # イベントループ外からの変更。次の flush で送る
            logger.debug("no running event loop; push deferred until flush")

    async def push(self) -> RemoteAck | None:
        """現在のコレクション全体を push する.

        Returns:
            リモートの応答。未設定・失敗時は None。
            送信中の push に合流した場合は、その追加 push の応答
        """
        url = self._state.endpoint_url
        if not url:
            return None
        if self._in_flight is not None:
            self._push_again = True
            return await asyncio.shield(self._in_flight)

        self._in_flight = asyncio.get_running_loop().create_future()
        ack = None
        try:
            while True:
                self._push_again = False
                self._dirty = False
                try:
                    ack = await self._send(url, self._state.records)
                except SyncError as e:
                    logger.warning("push failed: %s", e.message)
                    ack = None
                if not self._push_again:
                    return ack
        finally:
            done, self._in_flight = self._in_flight, None
            if not done.done():
                done.set_result(ack)

    async def flush(self) -> None:
        """保留中の push があれば即座に実行し、実行中の push を待つ."""
        if self._debounce.pending:
            await self._debounce.flush()
        elif self._dirty:
            await self.push()
        await self._debounce.wait_idle()

    async def _debounced_push(self) -> None:
        await self.push()

    async def _send(self, url: str, records: list[ActivityRecord]) -> RemoteAck:
        remote = self._remote_factory(url)
        try:
            ack = await asyncio.to_thread(remote.replace_records, records)
        except RemoteStoreError as e:
            raise SyncError(e.message) from e
        logger.info("pushed %d records", ack.count)
        return ack

    # ---------- pull ----------

    async def pull(self) -> PullResult | None:
        """リモートの内容でローカルを置き換える.

        Returns:
            取得結果。未設定・失敗時は None（ローカルは変更しない）
        """
        url = self._state.endpoint_url
        if not url:
            return None
        try:
            snapshot = await self._fetch(url)
        except FetchError as e:
            logger.error("pull failed: %s", e.message)
            return None

        # count は from_wire で整数化済み
        records = sort_records(snapshot.records)
        self._state.replace_all(records)
        self.spreadsheet_url = snapshot.spreadsheet_url
        logger.info("pulled %d records", len(records))
        return PullResult(records=records, spreadsheet_url=snapshot.spreadsheet_url)

    async def on_endpoint_configured(self, url: str | None) -> PullResult | None:
        """エンドポイントURLを保存し、設定されていれば1回 pull する."""
        cleaned = self._state.set_endpoint_url(url)
        if cleaned is None:
            self._debounce.cancel()
            self._dirty = False
            self.spreadsheet_url = None
            return None
        return await self.pull()

    async def _fetch(self, url: str) -> RemoteSnapshot:
        remote = self._remote_factory(url)
        try:
            return await asyncio.to_thread(remote.fetch_snapshot)
        except RemoteStoreError as e:
            raise FetchError(e.message) from e

    # ---------- 付随アクション ----------

    async def import_calendar(self, start: date, end: date) -> int:
        """リモートにカレンダー予定を取り込ませ、結果を pull する.

        Raises:
            EndpointNotConfigured: エンドポイント未設定
            InvalidFieldValue: 期間が逆転している
            CalendarImportError: リモートの失敗（メッセージはそのまま）
        """
        url = self._require_endpoint()
        if start > end:
            raise InvalidFieldValue("endDate", "終了日は開始日以降にしてください")

        remote = self._remote_factory(url)
        try:
            count = await asyncio.to_thread(remote.import_calendar, start, end)
        except CalendarImportError:
            raise
        except RemoteStoreError as e:
            raise CalendarImportError(e.message) from e

        logger.info("imported %d calendar events", count)
        if count:
            await self.pull()
        return count

    async def parse_voice(
        self, transcript: str, now: datetime | None = None
    ) -> VoiceDraft:
        """音声テキストをリモート経由で解析し、レコード下書きを返す.

        Raises:
            EndpointNotConfigured: エンドポイント未設定
            MissingRequiredField: テキストが空
            VoiceParseError: リモートの失敗（メッセージはそのまま）
        """
        url = self._require_endpoint()
        transcript = transcript.strip()
        if not transcript:
            raise MissingRequiredField(["transcript"])

        current_date = format_current_date(now or datetime.now())
        remote = self._remote_factory(url)
        try:
            return await asyncio.to_thread(remote.parse_voice, transcript, current_date)
        except VoiceParseError:
            raise
        except RemoteStoreError as e:
            raise VoiceParseError(e.message) from e

    def _require_endpoint(self) -> str:
        url = self._state.endpoint_url
        if not url:
            raise EndpointNotConfigured()
        return url
