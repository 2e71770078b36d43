"""
pytest 설정 및 공통 픽스처 정의
"""
import random
import sys
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import AsyncGenerator, List
from unittest.mock import MagicMock, AsyncMock

import pytest

# 프로젝트 루트를 Python 경로에 추가
PROJECT_ROOT = Path(__file__).parent.parent
sys.path.insert(0, str(PROJECT_ROOT))


# =============================================================================
# pytest 설정
# =============================================================================


def pytest_configure(config):
    """pytest 설정"""
    config.addinivalue_line(
        "markers", "slow: marks tests as slow (deselect with '-m \"not slow\"')"
    )
    config.addinivalue_line(
        "markers", "integration: marks tests as integration tests"
    )


# =============================================================================
# 데이터베이스 픽스처
# =============================================================================


@pytest.fixture(scope="function")
async def test_db() -> AsyncGenerator[None, None]:
    """
    테스트용 인메모리 SQLite 데이터베이스
    각 테스트 함수마다 새로운 DB 생성
    """
    from tortoise import Tortoise

    await Tortoise.init(
        db_url="sqlite://:memory:",
        modules={"models": ["models"]}
    )
    await Tortoise.generate_schemas()

    yield

    await Tortoise.close_connections()


# =============================================================================
# 시간 / 이벤트 픽스처
# =============================================================================


class FakeClock:
    """수동으로 진행시키는 시계"""

    def __init__(self, start: datetime):
        self.now = start

    def __call__(self) -> datetime:
        return self.now

    def advance(self, seconds: float) -> datetime:
        self.now = self.now + timedelta(seconds=seconds)
        return self.now


class EventRecorder:
    """publish 자리에 넣어 발행된 이벤트를 기록"""

    def __init__(self):
        self.events = []

    async def __call__(self, event) -> None:
        self.events.append(event)

    def of(self, event_type) -> List:
        return [e for e in self.events if e.type == event_type]

    def types(self) -> List[str]:
        return [e.type.value for e in self.events]


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock(datetime(2026, 1, 1, 12, 0, 0, tzinfo=timezone.utc))


@pytest.fixture
def events() -> EventRecorder:
    return EventRecorder()


@pytest.fixture
def rng() -> random.Random:
    return random.Random(1234)


# =============================================================================
# 서비스 픽스처
# =============================================================================


@pytest.fixture
async def settlement_service(test_db, events, clock, rng):
    from service.auction.settlement_service import SettlementService

    return SettlementService(publish=events, rng=rng, clock=clock)


@pytest.fixture
async def auction_service(test_db, events, clock, settlement_service):
    """
    테스트용 경매 서비스

    타이머는 실제 asyncio 태스크이므로 테스트 종료 시 모두 정리합니다.
    """
    from service.auction.auction_scheduler import AuctionScheduler
    from service.auction.auction_service import AuctionService

    service = AuctionService(
        publish=events,
        scheduler=AuctionScheduler(clock=clock),
        settlement=settlement_service,
        clock=clock,
    )

    yield service

    await service.scheduler.shutdown()


# =============================================================================
# 엔티티 팩토리 픽스처
# =============================================================================


@pytest.fixture
def member_factory(test_db):
    """길드원 + DKP 장부 생성 팩토리 (dkp=None이면 장부 행 없이 생성)"""
    from models import MemberDKP, User, UserRole

    counter = {"discord_id": 100000000}

    async def _create_member(
        name: str = "TestMember",
        dkp: int | None = 100,
        role: UserRole = UserRole.MEMBER,
    ) -> User:
        counter["discord_id"] += 1
        user = await User.create(
            discord_id=counter["discord_id"],
            character_name=name,
            role=role,
        )
        if dkp is not None:
            await MemberDKP.create(user=user, current_dkp=dkp, lifetime_gained=dkp)
        return user

    return _create_member


@pytest.fixture
def auction_factory(auction_service):
    """서비스를 거쳐 경매 생성 (타이머 포함)"""

    async def _create_auction(
        item_name: str = "Thunderfury",
        min_bid: int = 0,
        duration_seconds: int = 300,
    ):
        return await auction_service.create_auction(
            item_name,
            min_bid=min_bid,
            duration_seconds=duration_seconds,
        )

    return _create_auction


# =============================================================================
# Mock 픽스처
# =============================================================================


@pytest.fixture
def mock_discord_interaction() -> MagicMock:
    """Mock Discord Interaction 객체"""
    interaction = MagicMock()
    interaction.user = MagicMock()
    interaction.user.id = 123456789
    interaction.user.name = "TestUser"
    interaction.user.send = AsyncMock()
    interaction.response = MagicMock()
    interaction.response.send_message = AsyncMock()
    interaction.response.defer = AsyncMock()
    interaction.followup = MagicMock()
    interaction.followup.send = AsyncMock()
    return interaction
