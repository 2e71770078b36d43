"""
경매 마감 타이머 테스트
"""
import asyncio
from datetime import timedelta

import pytest

from service.auction.auction_scheduler import AuctionScheduler
from utils.time_utils import utc_now


def _in(seconds: float):
    return utc_now() + timedelta(seconds=seconds)


@pytest.fixture
def fired():
    return []


@pytest.fixture
async def scheduler(fired):
    async def on_expire(auction_id):
        fired.append(auction_id)

    scheduler = AuctionScheduler(on_expire=on_expire)
    yield scheduler
    await scheduler.shutdown()


class TestAuctionScheduler:
    async def test_fires_after_delay(self, scheduler, fired):
        scheduler.schedule(1, _in(0.05))
        assert scheduler.is_scheduled(1)

        await asyncio.sleep(0.2)

        assert fired == [1]
        assert not scheduler.is_scheduled(1)

    async def test_past_deadline_fires_immediately(self, scheduler, fired):
        delay = scheduler.schedule(2, _in(-60))
        assert delay == 0

        await asyncio.sleep(0.05)

        assert fired == [2]

    async def test_reschedule_replaces_timer(self, scheduler, fired):
        scheduler.schedule(3, _in(0.05))
        scheduler.schedule(3, _in(0.3))

        await asyncio.sleep(0.15)
        assert fired == []
        assert scheduler.pending_ids() == [3]

        await asyncio.sleep(0.3)
        assert fired == [3]

    async def test_cancel(self, scheduler, fired):
        scheduler.schedule(4, _in(0.05))

        assert scheduler.cancel(4) is True
        assert scheduler.cancel(4) is False

        await asyncio.sleep(0.15)
        assert fired == []

    async def test_callback_error_is_logged_not_raised(self, fired):
        async def on_expire(auction_id):
            raise RuntimeError("settlement failed")

        scheduler = AuctionScheduler(on_expire=on_expire)
        scheduler.schedule(5, _in(0))
        await asyncio.sleep(0.05)

        assert not scheduler.is_scheduled(5)
        await scheduler.shutdown()

    async def test_schedule_without_callback_raises(self):
        scheduler = AuctionScheduler()
        with pytest.raises(RuntimeError):
            scheduler.schedule(1, _in(10))

    async def test_shutdown_cancels_pending(self, scheduler, fired):
        scheduler.schedule(6, _in(10))
        scheduler.schedule(7, _in(10))

        await scheduler.shutdown()

        assert scheduler.pending_ids() == []
        assert fired == []
