"""
이벤트 버스 테스트
"""
from unittest.mock import AsyncMock

import pytest

from service.event.event_bus import AuctionEvent, AuctionEventType, EventBus, safe_publish


@pytest.fixture
def event_bus():
    return EventBus()


class TestEventBus:
    async def test_publish_to_subscriber(self, event_bus):
        received = []

        async def on_bid(event):
            received.append(event)

        event_bus.subscribe(AuctionEventType.BID_PLACED, on_bid)
        event = AuctionEvent(type=AuctionEventType.BID_PLACED, data={"auction_id": 1, "amount": 10})
        await event_bus.publish(event)

        assert received == [event]
        assert received[0].auction_id == 1

    async def test_only_matching_type_delivered(self, event_bus):
        callback = AsyncMock(__name__="on_started")
        event_bus.subscribe(AuctionEventType.AUCTION_STARTED, callback)

        await event_bus.publish(AuctionEvent(type=AuctionEventType.AUCTION_ENDED, data={}))

        callback.assert_not_awaited()

    async def test_duplicate_subscription_ignored(self, event_bus):
        callback = AsyncMock(__name__="on_ended")
        event_bus.subscribe(AuctionEventType.AUCTION_ENDED, callback)
        event_bus.subscribe(AuctionEventType.AUCTION_ENDED, callback)

        assert event_bus.get_subscriber_count(AuctionEventType.AUCTION_ENDED) == 1

    async def test_failing_subscriber_does_not_block_others(self, event_bus):
        failing = AsyncMock(side_effect=RuntimeError("boom"), __name__="failing")
        healthy = AsyncMock(__name__="healthy")
        event_bus.subscribe(AuctionEventType.AUCTION_CANCELLED, failing)
        event_bus.subscribe(AuctionEventType.AUCTION_CANCELLED, healthy)

        await event_bus.publish(AuctionEvent(type=AuctionEventType.AUCTION_CANCELLED, data={}))

        healthy.assert_awaited_once()

    async def test_unsubscribe(self, event_bus):
        callback = AsyncMock(__name__="cb")
        event_bus.subscribe(AuctionEventType.BID_PLACED, callback)
        event_bus.unsubscribe(AuctionEventType.BID_PLACED, callback)
        event_bus.unsubscribe(AuctionEventType.BID_PLACED, callback)

        await event_bus.publish(AuctionEvent(type=AuctionEventType.BID_PLACED, data={}))

        callback.assert_not_awaited()
        assert event_bus.get_subscriber_count(AuctionEventType.BID_PLACED) == 0

    async def test_clear_all_subscribers(self, event_bus):
        event_bus.subscribe(AuctionEventType.BID_PLACED, AsyncMock(__name__="a"))
        event_bus.subscribe(AuctionEventType.AUCTION_ENDED, AsyncMock(__name__="b"))

        event_bus.clear_all_subscribers()

        assert event_bus.get_subscriber_count(AuctionEventType.BID_PLACED) == 0
        assert event_bus.get_subscriber_count(AuctionEventType.AUCTION_ENDED) == 0


class TestSafePublish:
    async def test_none_publisher_is_noop(self):
        await safe_publish(None, AuctionEventType.AUCTION_STARTED, {"auction_id": 1})

    async def test_wraps_data_in_event(self):
        publish = AsyncMock()
        await safe_publish(publish, AuctionEventType.AUCTIONS_CLEARED, {"count": 3})

        event = publish.await_args.args[0]
        assert event.type == AuctionEventType.AUCTIONS_CLEARED
        assert event.data == {"count": 3}
        assert event.auction_id is None

    async def test_publisher_error_is_swallowed(self):
        publish = AsyncMock(side_effect=RuntimeError("discord down"))
        await safe_publish(publish, AuctionEventType.BID_PLACED, {"auction_id": 1})
        publish.assert_awaited_once()
