"""Local Store の SQLite 実装。

キー/値テーブル1つに、記録コレクション（JSON配列）と
エンドポイントURLを別キーで保存する。
"""

import json
import logging
import sqlite3

from backend.interfaces.local_store import LocalStoreInterface
from backend.interfaces.record import ActivityRecord

logger = logging.getLogger(__name__)

RECORDS_KEY = "activity_records"
ENDPOINT_URL_KEY = "gas_webapp_url"

# スキーマ定義
SCHEMA_SQL = """
CREATE TABLE IF NOT EXISTS kv (
    key     TEXT PRIMARY KEY,
    value   TEXT NOT NULL
);
"""


class SqliteLocalStore(LocalStoreInterface):
    """SQLiteによる Local Store 実装。"""

    def __init__(self, db_path: str):
        """初期化。

        Args:
            db_path: SQLiteデータベースファイルのパス
        """
        self._db_path = db_path
        self._init_schema()

    def _init_schema(self):
        """スキーマを初期化する。"""
        with self._connect() as conn:
            conn.executescript(SCHEMA_SQL)
            conn.commit()

    def _connect(self) -> sqlite3.Connection:
        """データベース接続を取得する。"""
        return sqlite3.connect(self._db_path)

    def _get(self, key: str) -> str | None:
        with self._connect() as conn:
            row = conn.execute("SELECT value FROM kv WHERE key = ?", (key,)).fetchone()
        return row[0] if row else None

    def _put(self, key: str, value: str) -> None:
        with self._connect() as conn:
            conn.execute(
                """
                INSERT INTO kv (key, value) VALUES (?, ?)
                ON CONFLICT(key) DO UPDATE SET value = excluded.value
                """,
                (key, value),
            )
            conn.commit()

    def _delete(self, key: str) -> None:
        with self._connect() as conn:
            conn.execute("DELETE FROM kv WHERE key = ?", (key,))
            conn.commit()

    def load_records(self) -> list[ActivityRecord]:
        """保存済みコレクションを読み込む。

        JSONが壊れている・配列でない場合は空として扱う。
        復元できない個別の行は読み飛ばす。
        """
        raw = self._get(RECORDS_KEY)
        if raw is None:
            return []
        try:
            data = json.loads(raw)
        except json.JSONDecodeError:
            logger.warning("stored records are not valid JSON; starting empty")
            return []
        if not isinstance(data, list):
            logger.warning("stored records are not a list; starting empty")
            return []

        records = []
        for row in data:
            if not isinstance(row, dict):
                continue
            try:
                records.append(ActivityRecord.from_wire(row))
            except ValueError:
                logger.warning("skipping stored record without id: %r", row)
        return records

    def save_records(self, records: list[ActivityRecord]) -> None:
        payload = json.dumps([r.to_wire() for r in records], ensure_ascii=False)
        self._put(RECORDS_KEY, payload)

    def load_endpoint_url(self) -> str | None:
        return self._get(ENDPOINT_URL_KEY) or None

    def save_endpoint_url(self, url: str | None) -> None:
        if url:
            self._put(ENDPOINT_URL_KEY, url)
        else:
            self._delete(ENDPOINT_URL_KEY)
