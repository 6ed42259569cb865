"""asyncio ベースのキャンセル可能な遅延実行（デバウンス）。

UI のイベント系から切り離した arm / cancel / fire の抽象。
同一イベントループ上でのみ使う前提で、ロックは持たない。
"""

import asyncio
import logging
from collections.abc import Awaitable, Callable

logger = logging.getLogger(__name__)


class ScheduledTask:
    """遅延実行タスク。

    ``arm()`` のたびにタイマーを張り直すので、静穏期間が ``delay``
    続いたときだけ callback が1回実行される。
    """

    def __init__(self, delay: float, callback: Callable[[], Awaitable[None]]) -> None:
        self._delay = delay
        self._callback = callback
        self._handle: asyncio.TimerHandle | None = None
        self._running: set[asyncio.Task] = set()

    @property
    def pending(self) -> bool:
        """タイマーが張られていて未発火か。"""
        return self._handle is not None

    def arm(self) -> None:
        """タイマーを張る（既存のタイマーは取り消して張り直す）。

        実行中のイベントループが必要。
        """
        loop = asyncio.get_running_loop()
        self.cancel()
        self._handle = loop.call_later(self._delay, self._fire)

    def cancel(self) -> None:
        if self._handle is not None:
            self._handle.cancel()
            self._handle = None

    async def flush(self) -> None:
        """張られていれば即座に発火し、完了まで待つ。"""
        if self._handle is None:
            return
        self.cancel()
        await self._run()

    async def wait_idle(self) -> None:
        """発火済みで実行中の callback が全て終わるまで待つ。"""
        while self._running:
            await asyncio.gather(*list(self._running), return_exceptions=True)

    def _fire(self) -> None:
        self._handle = None
        task = asyncio.get_running_loop().create_task(self._run())
        self._running.add(task)
        task.add_done_callback(self._running.discard)

    async def _run(self) -> None:
        try:
            await self._callback()
        except Exception:
            logger.exception("scheduled task failed")
