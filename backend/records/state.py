"""アプリケーション状態コンテナ。

記録コレクションとリモートエンドポイントURLを保持する唯一の場所。
モジュールレベルのグローバル状態は持たず、API 層が所有して
Sync Engine / Report Engine に引数として渡す。
"""

import logging
from collections.abc import Callable, Iterable

from backend.errors import DuplicateRecordId, RecordNotFound
from backend.interfaces.local_store import LocalStoreInterface
from backend.interfaces.record import ActivityRecord

logger = logging.getLogger(__name__)

ChangeListener = Callable[[], None]


def _dedupe(records: Iterable[ActivityRecord]) -> list[ActivityRecord]:
    """id 重複を除去する（先勝ち）。"""
    seen: set[str] = set()
    unique: list[ActivityRecord] = []
    for record in records:
        if record.id in seen:
            logger.warning("dropping duplicate record id %s", record.id)
            continue
        seen.add(record.id)
        unique.append(record)
    return unique


class ActivityLogState:
    """記録コレクションの所有者。

    ユーザー操作による変更は、直後にコレクション全体を保存してから
    リスナー（Sync Engine のデバウンス）へ通知する。
    """

    def __init__(self, store: LocalStoreInterface) -> None:
        self._store = store
        self._records = _dedupe(store.load_records())
        self._endpoint_url = store.load_endpoint_url()
        self._listeners: list[ChangeListener] = []

    # ---------- 参照 ----------

    @property
    def records(self) -> list[ActivityRecord]:
        """保存順のコピー。表示順は ordering モジュールで決める。"""
        return list(self._records)

    def get(self, record_id: str) -> ActivityRecord:
        """Raises: RecordNotFound"""
        return self._records[self._index_of(record_id)]

    @property
    def endpoint_url(self) -> str | None:
        return self._endpoint_url

    # ---------- 変更 ----------

    def add_listener(self, listener: ChangeListener) -> None:
        self._listeners.append(listener)

    def add(self, record: ActivityRecord) -> ActivityRecord:
        if any(r.id == record.id for r in self._records):
            raise DuplicateRecordId(record.id)
        self._records.append(record)
        self._commit()
        return record

    def add_many(self, records: Iterable[ActivityRecord]) -> list[ActivityRecord]:
        """複数件をまとめて追加する（保存・通知は1回）。"""
        added = list(records)
        existing = {r.id for r in self._records}
        for record in added:
            if record.id in existing:
                raise DuplicateRecordId(record.id)
            existing.add(record.id)
        if added:
            self._records.extend(added)
            self._commit()
        return added

    def update(self, record: ActivityRecord) -> ActivityRecord:
        """同じ id のレコードを丸ごと置き換える。"""
        index = self._index_of(record.id)
        self._records[index] = record
        self._commit()
        return record

    def delete(self, record_id: str) -> None:
        index = self._index_of(record_id)
        del self._records[index]
        self._commit()

    def delete_many(self, record_ids: Iterable[str]) -> int:
        """指定 id 群を一括削除する。存在しない id は無視する。

        Returns:
            削除した件数
        """
        targets = set(record_ids)
        kept = [r for r in self._records if r.id not in targets]
        deleted = len(self._records) - len(kept)
        if deleted:
            self._records = kept
            self._commit()
        return deleted

    def replace_all(self, records: Iterable[ActivityRecord]) -> None:
        """コレクション全体を置き換える（sync pull 用）。

        保存はするがリスナーには通知しない（push は発生しない）。
        """
        self._records = _dedupe(records)
        self._store.save_records(self._records)

    def set_endpoint_url(self, url: str | None) -> str | None:
        """エンドポイントURLを保存する。空文字は未設定扱い。"""
        cleaned = (url or "").strip() or None
        self._endpoint_url = cleaned
        self._store.save_endpoint_url(cleaned)
        return cleaned

    # ---------- 内部 ----------

    def _index_of(self, record_id: str) -> int:
        for i, record in enumerate(self._records):
            if record.id == record_id:
                return i
        raise RecordNotFound(record_id)

    def _commit(self) -> None:
        self._store.save_records(self._records)
        for listener in self._listeners:
            listener()
