"""DI用ファクトリ関数。

backend/ 直下に配置することで、records/ や sync/engine.py から
store/ や sheet/ の実装への直接依存を避けつつ、FastAPI の Depends() で注入できる。
"""

from backend.config import Settings, load_settings
from backend.interfaces.local_store import LocalStoreInterface
from backend.interfaces.remote_store import RemoteStoreInterface
from backend.records.state import ActivityLogState
from backend.sheet.service import SheetService
from backend.sync.engine import SyncEngine

_settings: Settings | None = None
_local_store: LocalStoreInterface | None = None
_state: ActivityLogState | None = None
_sync_engine: SyncEngine | None = None
_sheet_service: SheetService | None = None
_remote_stores: dict[str, RemoteStoreInterface] = {}


def get_settings() -> Settings:
    """Settingsのシングルトンインスタンスを返す。"""
    global _settings
    if _settings is None:
        _settings = load_settings()
    return _settings


def get_local_store() -> LocalStoreInterface:
    """LocalStoreのシングルトンインスタンスを返す。"""
    global _local_store
    if _local_store is None:
        from backend.store.sqlite import SqliteLocalStore

        settings = get_settings()
        settings.data_dir.mkdir(parents=True, exist_ok=True)
        _local_store = SqliteLocalStore(str(settings.local_db_path))
    return _local_store


def get_state() -> ActivityLogState:
    """アプリケーション状態のシングルトンインスタンスを返す。"""
    global _state
    if _state is None:
        _state = ActivityLogState(get_local_store())
    return _state


def create_remote_store(url: str) -> RemoteStoreInterface:
    """エンドポイントURLに対するリモートストアクライアントを返す。

    同じURLには同じクライアント（HTTPセッション）を使い回す。
    URLが変わったら古いクライアントは閉じる。
    """
    remote = _remote_stores.get(url)
    if remote is None:
        from backend.sync.gas_client import GasRemoteStore

        close_remote_stores()
        remote = GasRemoteStore(url, timeout=get_settings().http_timeout)
        _remote_stores[url] = remote
    return remote


def close_remote_stores() -> None:
    """生成済みのリモートストアクライアントを全て閉じる。"""
    while _remote_stores:
        _, remote = _remote_stores.popitem()
        remote.close()


def get_sync_engine() -> SyncEngine:
    """SyncEngineのシングルトンインスタンスを返す。"""
    global _sync_engine
    if _sync_engine is None:
        _sync_engine = SyncEngine(
            get_state(),
            remote_factory=create_remote_store,
            delay=get_settings().sync_delay,
        )
    return _sync_engine


def get_sheet_service() -> SheetService:
    """シートサービスのシングルトンインスタンスを返す。

    GEMINI_API_KEY / GOOGLE_CALENDAR_TOKEN が未設定なら
    該当アクションはエラー応答になる。
    """
    global _sheet_service
    if _sheet_service is None:
        from backend.sheet.sqlite import SqliteSheetStore

        settings = get_settings()
        settings.sheet_db.parent.mkdir(parents=True, exist_ok=True)

        voice_parser = None
        if settings.gemini_api_key:
            from backend.sheet.gemini import GeminiVoiceParser

            voice_parser = GeminiVoiceParser(
                settings.gemini_api_key,
                model=settings.gemini_model,
                timeout=settings.http_timeout,
            )

        calendar_source = None
        if settings.google_calendar_token:
            from backend.sheet.google_calendar import GoogleCalendarSource

            calendar_source = GoogleCalendarSource(str(settings.google_calendar_token))

        _sheet_service = SheetService(
            SqliteSheetStore(str(settings.sheet_db)),
            calendar_source=calendar_source,
            voice_parser=voice_parser,
        )
    return _sheet_service


def _reset_all() -> None:
    """全シングルトンをリセットする（テスト用）。"""
    global _settings, _local_store, _state, _sync_engine, _sheet_service
    close_remote_stores()
    _settings = None
    _local_store = None
    _state = None
    _sync_engine = None
    _sheet_service = None
