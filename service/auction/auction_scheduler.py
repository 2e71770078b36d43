"""
경매 마감 타이머

경매 ID마다 대기 중인 타이머를 최대 1개만 유지합니다.
타이머 교체는 항상 '기존 취소 후 새로 등록'으로만 이루어집니다.
마감 시각은 절대 시각(ends_at)이므로 재시작 후 DB 값으로 다시 등록할 수 있습니다.
"""
import asyncio
import logging
from datetime import datetime
from typing import Awaitable, Callable, Dict, List

from utils.time_utils import Clock, seconds_until, utc_now

logger = logging.getLogger(__name__)

ExpireCallback = Callable[[int], Awaitable[object]]


class AuctionScheduler:
    """경매 ID -> 취소 가능한 타이머 태스크"""

    def __init__(self, on_expire: ExpireCallback | None = None, clock: Clock = utc_now):
        self._on_expire = on_expire
        self._clock = clock
        self._timers: Dict[int, asyncio.Task] = {}

    def set_expire_callback(self, on_expire: ExpireCallback) -> None:
        self._on_expire = on_expire

    def schedule(self, auction_id: int, ends_at: datetime) -> float:
        """
        마감 타이머 등록 (기존 타이머는 취소)

        마감 시각이 이미 지났으면 지연 0으로 즉시 정산을 시작합니다.

        Returns:
            마감까지 남은 초
        """
        if self._on_expire is None:
            raise RuntimeError("AuctionScheduler expire callback is not set")

        self.cancel(auction_id)

        delay = max(0.0, seconds_until(ends_at, self._clock()))
        task = asyncio.create_task(
            self._run(auction_id, delay),
            name=f"auction-close-{auction_id}"
        )
        self._timers[auction_id] = task

        logger.info(f"Scheduled auto-close for auction {auction_id} in {round(delay)}s")
        return delay

    def cancel(self, auction_id: int) -> bool:
        """대기 중인 타이머 취소 (없으면 False)"""
        task = self._timers.pop(auction_id, None)
        if task is None:
            return False
        if task is not asyncio.current_task():
            task.cancel()
        logger.debug(f"Cancelled auto-close timer for auction {auction_id}")
        return True

    def is_scheduled(self, auction_id: int) -> bool:
        return auction_id in self._timers

    def pending_ids(self) -> List[int]:
        return list(self._timers)

    async def shutdown(self) -> None:
        """모든 타이머 취소 (봇 종료 시)"""
        tasks = list(self._timers.values())
        self._timers.clear()
        for task in tasks:
            task.cancel()
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)
        logger.info(f"AuctionScheduler stopped ({len(tasks)} timers cancelled)")

    async def _run(self, auction_id: int, delay: float) -> None:
        await asyncio.sleep(delay)

        # 자기 자신의 핸들을 먼저 내려놓아야 정산 중 cancel()이 자신을 취소하지 않음
        if self._timers.get(auction_id) is asyncio.current_task():
            del self._timers[auction_id]

        try:
            await self._on_expire(auction_id)
        except Exception as e:
            logger.error(f"Auto-close failed for auction {auction_id}: {e}", exc_info=True)
