"""リモート表形式ストア（GAS Webアプリ互換エンドポイント）の HTTP クライアント."""

import logging
from datetime import date
from typing import Any

import requests

from backend.errors import CalendarImportError, RemoteStoreError, VoiceParseError
from backend.interfaces.record import ActivityRecord
from backend.interfaces.remote_store import (
    RemoteAck,
    RemoteSnapshot,
    RemoteStoreInterface,
    VoiceDraft,
)

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT: float = 30.0


class GasRemoteStore(RemoteStoreInterface):
    """requests による RemoteStoreInterface 実装.

    リクエストボディは常に ``application/json`` で送る。
    """

    def __init__(
        self,
        url: str,
        timeout: float = DEFAULT_TIMEOUT,
        session: requests.Session | None = None,
    ) -> None:
        self._url = url
        self._timeout = timeout
        # 渡されたセッションは呼び出し元が閉じる
        self._owns_session = session is None
        self._session = session or requests.Session()

    def close(self) -> None:
        if self._owns_session:
            self._session.close()

    def fetch_snapshot(self) -> RemoteSnapshot:
        payload = self._request("GET")
        try:
            return RemoteSnapshot.from_payload(payload)
        except ValueError as e:
            raise RemoteStoreError(str(e)) from e

    def replace_records(self, records: list[ActivityRecord]) -> RemoteAck:
        ack = RemoteAck.from_payload(
            self._request("POST", [r.to_wire() for r in records])
        )
        if not ack.ok:
            raise RemoteStoreError(ack.message or "リモートへの保存に失敗しました")
        return ack

    def import_calendar(self, start: date, end: date) -> int:
        ack = RemoteAck.from_payload(
            self._request(
                "POST",
                {
                    "action": "import",
                    "startDate": start.isoformat(),
                    "endDate": end.isoformat(),
                },
            )
        )
        if not ack.ok:
            raise CalendarImportError(ack.message or "カレンダーの取り込みに失敗しました")
        return ack.count

    def parse_voice(self, transcript: str, current_date: str) -> VoiceDraft:
        result = self._request(
            "POST",
            {
                "action": "parseVoice",
                "transcript": transcript,
                "currentDate": current_date,
            },
        )
        if not isinstance(result, dict):
            raise VoiceParseError("解析結果を取得できませんでした")
        if result.get("status") == "error":
            raise VoiceParseError(str(result.get("message") or "解析に失敗しました"))
        data = result.get("data")
        if not isinstance(data, dict):
            raise VoiceParseError("解析結果を取得できませんでした")
        return VoiceDraft.from_payload(data)

    def _request(self, method: str, body: Any = None) -> Any:
        """1回だけリクエストし、JSONボディを返す.

        Raises:
            RemoteStoreError: 通信失敗・非2xx・JSONでない応答
        """
        try:
            response = self._session.request(
                method, self._url, json=body, timeout=self._timeout
            )
            response.raise_for_status()
            return response.json()
        except requests.RequestException as e:
            # JSONDecodeError も RequestException の派生
            logger.debug("%s %s failed: %s", method, self._url, e)
            raise RemoteStoreError(f"API呼び出しに失敗しました: {e}") from e
