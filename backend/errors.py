"""例外階層。

API 層はこの階層をHTTPステータスに変換する。
リモート系の失敗（SyncError / FetchError）は呼び出し元でログに留め、
ユーザーには通知しない。
"""


class ActivityLogError(Exception):
    """全例外の基底。"""

    code = "ACTIVITY_LOG_ERROR"

    def __init__(self, message: str):
        self.message = message
        super().__init__(message)


# ---------- 入力検証 ----------


class ValidationError(ActivityLogError):
    """レコード候補の検証エラー。保存をブロックする。"""

    code = "VALIDATION_ERROR"


class MissingRequiredField(ValidationError):
    """必須項目（日付・カテゴリ・活動内容）が空。"""

    code = "MISSING_REQUIRED_FIELD"

    def __init__(self, fields: list[str]):
        self.fields = list(fields)
        super().__init__(f"必須項目が未入力です: {', '.join(self.fields)}")


class InvalidFieldValue(ValidationError):
    """項目の形式が不正（日付・時刻・カテゴリなど）。"""

    code = "INVALID_FIELD_VALUE"

    def __init__(self, field: str, message: str):
        self.field = field
        super().__init__(f"{field}: {message}")


# ---------- コレクション操作 ----------


class RecordNotFound(ActivityLogError):
    code = "RECORD_NOT_FOUND"

    def __init__(self, record_id: str):
        self.record_id = record_id
        super().__init__(f"記録が見つかりません: {record_id}")


class DuplicateRecordId(ActivityLogError):
    code = "DUPLICATE_RECORD_ID"

    def __init__(self, record_id: str):
        self.record_id = record_id
        super().__init__(f"同じIDの記録が既に存在します: {record_id}")


# ---------- リモート連携 ----------


class EndpointNotConfigured(ActivityLogError):
    code = "ENDPOINT_NOT_CONFIGURED"

    def __init__(self) -> None:
        super().__init__(
            "GAS WebアプリのURLが設定されていません。設定画面で設定してください。"
        )


class RemoteStoreError(ActivityLogError):
    """リモート表形式ストアとの通信失敗、またはリモートが報告したエラー。"""

    code = "REMOTE_STORE_ERROR"


class SyncError(RemoteStoreError):
    """push の失敗。ログのみ。"""

    code = "SYNC_ERROR"


class FetchError(RemoteStoreError):
    """pull の失敗。ログのみ、ローカルは変更しない。"""

    code = "FETCH_ERROR"


class CalendarImportError(RemoteStoreError):
    """カレンダー取り込みの失敗。リモートのメッセージをそのまま表示する。"""

    code = "CALENDAR_IMPORT_ERROR"


class VoiceParseError(RemoteStoreError):
    """音声テキスト解析の失敗。リモートのメッセージをそのまま表示する。"""

    code = "VOICE_PARSE_ERROR"
