"""シートサービスの行ストア SQLite 実装。"""

import sqlite3
from pathlib import Path

from backend.interfaces.record import ActivityRecord
from backend.interfaces.sheet import SheetStoreInterface

SCHEMA_SQL = """
CREATE TABLE IF NOT EXISTS sheet_rows (
    row_no              INTEGER PRIMARY KEY AUTOINCREMENT,
    id                  TEXT NOT NULL,
    date                TEXT NOT NULL DEFAULT '',
    time                TEXT NOT NULL DEFAULT '',
    category            TEXT NOT NULL DEFAULT '',
    content             TEXT NOT NULL DEFAULT '',
    place               TEXT NOT NULL DEFAULT '',
    count               INTEGER NOT NULL DEFAULT 0,
    note                TEXT NOT NULL DEFAULT '',
    exclude_from_report INTEGER NOT NULL DEFAULT 0
);
"""

_COLUMNS = (
    "id, date, time, category, content, place, count, note, exclude_from_report"
)


def _to_row(record: ActivityRecord) -> tuple:
    return (
        record.id,
        record.date,
        record.time,
        record.category,
        record.content,
        record.place,
        record.count,
        record.note,
        int(record.exclude_from_report),
    )


class SqliteSheetStore(SheetStoreInterface):
    """SQLiteによる行ストア実装。行は挿入順（row_no）で保持する。"""

    def __init__(self, db_path: str):
        self._db_path = db_path
        self._conn = sqlite3.connect(db_path, check_same_thread=False)
        self._conn.executescript(SCHEMA_SQL)
        self._conn.commit()

    def get_records(self) -> list[ActivityRecord]:
        rows = self._conn.execute(
            f"SELECT {_COLUMNS} FROM sheet_rows ORDER BY row_no ASC"
        ).fetchall()
        return [
            ActivityRecord(
                id=row[0],
                date=row[1],
                time=row[2],
                category=row[3],
                content=row[4],
                place=row[5],
                count=row[6],
                note=row[7],
                exclude_from_report=bool(row[8]),
            )
            for row in rows
        ]

    def replace_records(self, records: list[ActivityRecord]) -> int:
        with self._conn:
            self._conn.execute("DELETE FROM sheet_rows")
            self._conn.executemany(
                f"INSERT INTO sheet_rows ({_COLUMNS}) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)",
                [_to_row(r) for r in records],
            )
        return len(records)

    def append_records(self, records: list[ActivityRecord]) -> int:
        with self._conn:
            self._conn.executemany(
                f"INSERT INTO sheet_rows ({_COLUMNS}) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)",
                [_to_row(r) for r in records],
            )
        return len(records)

    def spreadsheet_url(self) -> str:
        return Path(self._db_path).resolve().as_uri()
