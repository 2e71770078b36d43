"""
이벤트 버스 (Event Bus)

옵저버 패턴을 사용하여 경매 도메인 이벤트를 발행하고 구독합니다.
경매 엔진은 publish만 호출하며, 디스코드 알림 등 구독자 조합은 엔진 밖에서 이루어집니다.
전달은 fire-and-forget이므로 구독자는 중복/누락을 견딜 수 있어야 합니다.
"""

import logging
from datetime import datetime, timezone
from dataclasses import dataclass, field
from enum import Enum
from typing import Awaitable, Callable, Dict, List, Any

logger = logging.getLogger(__name__)


class AuctionEventType(Enum):
    """경매 이벤트 타입"""

    AUCTION_STARTED = "auction_started"         # 경매 시작
    BID_PLACED = "bid_placed"                   # 입찰 성공
    AUCTION_ENDED = "auction_ended"             # 정산 완료 (낙찰/유찰)
    AUCTION_CANCELLED = "auction_cancelled"     # 오피서 취소
    AUCTIONS_CLEARED = "auctions_cleared"       # 진행 중 경매 일괄 취소


@dataclass
class AuctionEvent:
    """경매 이벤트"""

    type: AuctionEventType
    data: Dict[str, Any]
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    @property
    def auction_id(self) -> int | None:
        return self.data.get("auction_id")

    def __repr__(self) -> str:
        return f"AuctionEvent(type={self.type.value}, data={self.data})"


EventCallback = Callable[[AuctionEvent], Awaitable[None]]
Publisher = Callable[[AuctionEvent], Awaitable[None]]


async def safe_publish(
    publish: Publisher | None,
    event_type: AuctionEventType,
    data: Dict[str, Any]
) -> None:
    """발행 실패가 호출한 경매 작업을 실패시키지 않도록 감싸서 발행"""
    if publish is None:
        return
    try:
        await publish(AuctionEvent(type=event_type, data=data))
    except Exception as e:
        logger.error(f"Failed to publish {event_type.value}: {e}", exc_info=True)


class EventBus:
    """
    이벤트 버스

    봇 프로세스에서 하나를 만들어 경매 서비스에 publish를 넘겨줍니다.

    Example:
        >>> event_bus = EventBus()
        >>>
        >>> async def on_bid(event: AuctionEvent):
        ...     print(f"New bid: {event.data['amount']}")
        >>>
        >>> event_bus.subscribe(AuctionEventType.BID_PLACED, on_bid)
        >>> service = AuctionService(publish=event_bus.publish)
    """

    def __init__(self):
        self._subscribers: Dict[AuctionEventType, List[EventCallback]] = {}

    def subscribe(self, event_type: AuctionEventType, callback: EventCallback) -> None:
        """
        이벤트 구독

        Args:
            event_type: 구독할 이벤트 타입
            callback: 이벤트 발생 시 호출할 콜백 함수 (async function)
        """
        if event_type not in self._subscribers:
            self._subscribers[event_type] = []

        if callback not in self._subscribers[event_type]:
            self._subscribers[event_type].append(callback)
            logger.debug(f"Subscribed to {event_type.value}: {callback.__name__}")

    def unsubscribe(self, event_type: AuctionEventType, callback: EventCallback) -> None:
        """구독 취소"""
        if event_type in self._subscribers:
            try:
                self._subscribers[event_type].remove(callback)
                logger.debug(f"Unsubscribed from {event_type.value}: {callback.__name__}")
            except ValueError:
                pass

    async def publish(self, event: AuctionEvent) -> None:
        """
        이벤트 발행

        구독자들에게 이벤트를 전파합니다.
        각 구독자의 콜백이 순차적으로 호출되며, 에러가 발생해도 다른 구독자에게 영향을 주지 않습니다.

        Args:
            event: 발행할 이벤트
        """
        if event.type not in self._subscribers:
            logger.debug(f"No subscribers for event: {event.type.value}")
            return

        logger.debug(f"Publishing event: {event}")

        for callback in list(self._subscribers[event.type]):
            try:
                await callback(event)
            except Exception as e:
                logger.error(
                    f"Error in event callback {callback.__name__} for {event.type.value}: {e}",
                    exc_info=True
                )

    def get_subscriber_count(self, event_type: AuctionEventType) -> int:
        """특정 이벤트 타입의 구독자 수 반환"""
        return len(self._subscribers.get(event_type, []))

    def clear_all_subscribers(self) -> None:
        """모든 구독자 제거 (테스트용)"""
        self._subscribers.clear()
        logger.info("All subscribers cleared")
