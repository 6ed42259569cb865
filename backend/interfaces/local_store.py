"""Local Store の抽象インターフェース（境界②）。

記録コレクション全体と、リモートエンドポイントURLを永続化する。
差分保存はしない。変更のたびにコレクション全体を保存する。
"""

from abc import ABC, abstractmethod

from backend.interfaces.record import ActivityRecord


class LocalStoreInterface(ABC):
    """ローカル永続化の抽象インターフェース。"""

    @abstractmethod
    def load_records(self) -> list[ActivityRecord]:
        """保存済みコレクションを読み込む。

        未保存・破損時は空リストを返す（例外にしない）。
        """
        ...

    @abstractmethod
    def save_records(self, records: list[ActivityRecord]) -> None:
        """コレクション全体を同期的に保存する。"""
        ...

    @abstractmethod
    def load_endpoint_url(self) -> str | None:
        """リモートエンドポイントURLを取得する。未設定なら None。"""
        ...

    @abstractmethod
    def save_endpoint_url(self, url: str | None) -> None:
        """リモートエンドポイントURLを保存する。None または空文字で削除。"""
        ...
