"""環境変数ベースの設定。

リモートエンドポイントURLはユーザー設定なのでここでは扱わない
（Local Store の別キーに保存される）。
"""

import logging
import os
from dataclasses import dataclass
from pathlib import Path

LOG_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"


@dataclass(frozen=True)
class Settings:
    """アプリケーション設定。"""

    data_dir: Path
    sync_delay: float = 2.0
    http_timeout: float = 30.0
    log_level: str = "INFO"
    sheet_db_path: Path | None = None
    gemini_api_key: str | None = None
    gemini_model: str = "gemini-2.0-flash"
    google_calendar_token: Path | None = None

    @property
    def local_db_path(self) -> Path:
        return self.data_dir / "activity_log.db"

    @property
    def sheet_db(self) -> Path:
        return self.sheet_db_path or self.data_dir / "sheet.db"


def _optional_path(value: str | None) -> Path | None:
    return Path(value) if value else None


def load_settings(env: dict[str, str] | None = None) -> Settings:
    """環境変数から Settings を構築する。

    Args:
        env: 参照する環境変数（省略時は os.environ）

    Raises:
        ValueError: 数値項目が数値として解釈できない場合
    """
    env = os.environ if env is None else env
    return Settings(
        data_dir=Path(env.get("ACTIVITY_LOG_DATA_DIR", "data")),
        sync_delay=float(env.get("ACTIVITY_LOG_SYNC_DELAY", "2.0")),
        http_timeout=float(env.get("ACTIVITY_LOG_HTTP_TIMEOUT", "30")),
        log_level=env.get("ACTIVITY_LOG_LOG_LEVEL", "INFO").upper(),
        sheet_db_path=_optional_path(env.get("ACTIVITY_LOG_SHEET_DB")),
        gemini_api_key=env.get("GEMINI_API_KEY") or None,
        gemini_model=env.get("GEMINI_MODEL", "gemini-2.0-flash"),
        google_calendar_token=_optional_path(env.get("GOOGLE_CALENDAR_TOKEN")),
    )


def configure_logging(level: str = "INFO") -> None:
    """ルートロガーを初期化する。既に設定済みなら何もしない。"""
    logging.basicConfig(level=level, format=LOG_FORMAT)
