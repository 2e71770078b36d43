"""
경매 서비스

DKP 경매의 등록, 입찰, 마감, 취소, 조회를 담당합니다.
정산 자체는 SettlementService, 마감 타이머는 AuctionScheduler가 맡습니다.
"""
import logging
import random
from datetime import timedelta
from typing import Dict, List, Optional, Tuple

from tortoise.functions import Count
from tortoise.transactions import in_transaction

from config.auction import AUCTION, DKP, AuctionConfig
from exceptions import (
    AuctionNotActiveError,
    AuctionNotFoundError,
    BidTooLowError,
    InsufficientDKPError,
    InvalidAuctionConfigError,
    InvalidBidAmountError,
)
from models.auction import Auction, AuctionStatus, ItemRarity
from models.auction_bid import AuctionBid
from models.auction_roll import AuctionRoll
from service.auction.anti_snipe import compute_extension
from service.auction.auction_result import (
    ActiveAuction,
    ActiveAuctions,
    AuctionHistoryEntry,
    BidResult,
    SettlementResult,
)
from service.auction.auction_scheduler import AuctionScheduler
from service.auction.settlement_service import SettlementService
from service.event.event_bus import AuctionEventType, Publisher, safe_publish
from service.ledger.ledger_service import LedgerService
from utils.time_utils import Clock, seconds_until, utc_now

logger = logging.getLogger(__name__)


def _is_int(value) -> bool:
    return isinstance(value, int) and not isinstance(value, bool)


class AuctionService:
    """
    경매 비즈니스 로직

    Args:
        publish: 도메인 이벤트 발행 함수 (보통 EventBus.publish)
        scheduler: 마감 타이머 (없으면 새로 생성)
        settlement: 정산 서비스 (없으면 새로 생성)
        clock: 현재 시각 함수 (테스트에서 고정 시각 주입)
        rng: 동점 주사위용 난수 생성기
        config: 경매 설정
    """

    def __init__(
        self,
        publish: Publisher | None = None,
        scheduler: AuctionScheduler | None = None,
        settlement: SettlementService | None = None,
        clock: Clock = utc_now,
        rng: random.Random | None = None,
        config: AuctionConfig = AUCTION
    ):
        self._publish = publish
        self._clock = clock
        self._config = config
        self.settlement = settlement or SettlementService(
            publish=publish, rng=rng, clock=clock, config=config
        )
        self.scheduler = scheduler or AuctionScheduler(clock=clock)
        self.scheduler.set_expire_callback(self._on_timer_expired)

    # =========================================================================
    # 등록
    # =========================================================================

    async def create_auction(
        self,
        item_name: str,
        min_bid: Optional[int] = None,
        duration_seconds: Optional[int] = None,
        created_by: Optional[int] = None,
        item_image: Optional[str] = None,
        item_rarity: ItemRarity = ItemRarity.EPIC,
        item_id: Optional[int] = None
    ) -> Auction:
        """
        경매 등록 + 마감 타이머 등록

        Raises:
            InvalidAuctionConfigError: 아이템 이름, 최소 입찰가, 진행 시간이 유효하지 않음
        """
        item_name = (item_name or "").strip()
        if not item_name:
            raise InvalidAuctionConfigError("item_name", "아이템 이름이 필요합니다")

        if min_bid is None:
            min_bid = self._config.DEFAULT_MIN_BID
        if not _is_int(min_bid) or min_bid < 0:
            raise InvalidAuctionConfigError("min_bid", "0 이상의 정수여야 합니다")

        if duration_seconds is None:
            duration_seconds = self._config.DEFAULT_DURATION_SECONDS
        if not _is_int(duration_seconds) or not (1 <= duration_seconds <= self._config.MAX_DURATION_SECONDS):
            raise InvalidAuctionConfigError(
                "duration_seconds",
                f"1~{self._config.MAX_DURATION_SECONDS}초 사이여야 합니다"
            )

        now = self._clock()
        ends_at = now + timedelta(seconds=duration_seconds)

        auction = await Auction.create(
            item_name=item_name,
            item_image=item_image or self._config.DEFAULT_ITEM_IMAGE,
            item_rarity=item_rarity,
            item_id=item_id,
            min_bid=min_bid,
            duration_seconds=duration_seconds,
            created_by_id=created_by,
            created_at=now,
            original_ends_at=ends_at,
            ends_at=ends_at,
            status=AuctionStatus.ACTIVE,
        )

        self.scheduler.schedule(auction.id, ends_at)

        logger.info(
            f"Auction {auction.id} created by {created_by}: {item_name} "
            f"(min_bid={min_bid}, {duration_seconds}s)"
        )

        await safe_publish(self._publish, AuctionEventType.AUCTION_STARTED, {
            "auction_id": auction.id,
            "item_name": item_name,
            "min_bid": min_bid,
            "duration_seconds": duration_seconds,
            "ends_at": ends_at,
        })

        return auction

    # =========================================================================
    # 입찰
    # =========================================================================

    async def place_bid(self, auction_id: int, user_id: int, amount: int) -> BidResult:
        """
        입찰

        검증, 기존 입찰 교체, 스나이핑 방지 연장까지 한 트랜잭션에서 처리하고
        커밋 후 연장된 마감 시각으로 타이머를 다시 등록합니다.

        Raises:
            AuctionNotFoundError: 경매 없음
            AuctionNotActiveError: 이미 종료된 경매
            InvalidBidAmountError: 1 이상의 정수가 아님
            BidTooLowError: 현재 최고가 이하 (입찰이 없으면 최소 입찰가 미만)
            InsufficientDKPError: 다른 경매 선두 입찰액을 뺀 사용 가능 DKP 부족
        """
        new_ends_at = None

        async with in_transaction() as conn:
            # Guard: 경매 존재 + 진행 중 (행 잠금)
            auction = await Auction.filter(id=auction_id).using_db(conn).select_for_update().first()
            if auction is None:
                raise AuctionNotFoundError(auction_id)
            if auction.status != AuctionStatus.ACTIVE:
                raise AuctionNotActiveError(auction_id, AuctionStatus(auction.status).value)

            # Guard: 금액 형식
            if not _is_int(amount) or amount < 1:
                raise InvalidBidAmountError(amount)

            # Guard: 현재 최고가 초과
            bids = await AuctionBid.filter(
                auction_id=auction_id
            ).using_db(conn).order_by("-amount", "created_at", "id")
            previous_top = bids[0] if bids else None

            if previous_top is not None and amount <= previous_top.amount:
                raise BidTooLowError(previous_top.amount, amount)
            if previous_top is None and amount < auction.min_bid:
                raise BidTooLowError(auction.min_bid, amount, is_minimum=True)

            # Guard: 사용 가능 DKP (이 경매 제외한 선두 입찰액 차감)
            available = await LedgerService.available(
                user_id, exclude_auction_id=auction_id, using_db=conn
            )
            if available < amount:
                raise InsufficientDKPError(amount, max(available, 0))

            # 기존 입찰 교체
            await AuctionBid.filter(auction_id=auction_id, user_id=user_id).using_db(conn).delete()
            await AuctionBid.create(
                auction_id=auction_id,
                user_id=user_id,
                amount=amount,
                using_db=conn
            )

            # 스나이핑 방지 연장
            now = self._clock()
            new_ends_at = compute_extension(auction.ends_at, auction.original_ends_at, now, self._config)
            if new_ends_at is not None:
                auction.ends_at = new_ends_at
                await auction.save(using_db=conn, update_fields=["ends_at"])
            elif 0 < seconds_until(auction.ends_at, now) <= self._config.SNIPE_THRESHOLD_SECONDS:
                logger.info(
                    f"Anti-snipe: auction {auction_id} max extension reached "
                    f"({self._config.MAX_SNIPE_EXTENSION_SECONDS}s cap)"
                )

        if new_ends_at is not None:
            self.scheduler.schedule(auction_id, new_ends_at)
            logger.info(f"Anti-snipe: auction {auction_id} extended to {new_ends_at.isoformat()}")

        result = BidResult(
            auction_id=auction_id,
            user_id=user_id,
            amount=amount,
            time_extended=new_ends_at is not None,
            new_ends_at=new_ends_at,
        )
        if previous_top is not None and previous_top.user_id != user_id:
            result.previous_leader_id = previous_top.user_id
            result.outbid_user_id = previous_top.user_id

        logger.info(f"User {user_id} bid {amount} DKP on auction {auction_id}")

        await safe_publish(self._publish, AuctionEventType.BID_PLACED, result.to_event_data())
        return result

    # =========================================================================
    # 마감 / 취소
    # =========================================================================

    async def close_auction(
        self,
        auction_id: int,
        performed_by: Optional[int] = None
    ) -> Optional[SettlementResult]:
        """
        수동 마감 (타이머 취소 후 즉시 정산)

        Returns:
            정산 결과. 이미 종료된 경매면 None

        Raises:
            AuctionNotFoundError: 경매 없음
            SettlementError: 정산 실패 (경매는 active로 남고 마감 점검에서 재시도)
        """
        if not await Auction.exists(id=auction_id):
            raise AuctionNotFoundError(auction_id)

        self.scheduler.cancel(auction_id)
        return await self.settlement.settle(auction_id, performed_by=performed_by)

    async def cancel_auction(self, auction_id: int) -> Auction:
        """
        경매 취소 (낙찰자 없음, DKP 변동 없음)

        Raises:
            AuctionNotFoundError: 경매 없음
            AuctionNotActiveError: 이미 종료된 경매
        """
        auction = await Auction.get_or_none(id=auction_id)
        if auction is None:
            raise AuctionNotFoundError(auction_id)

        self.scheduler.cancel(auction_id)

        updated = await Auction.filter(
            id=auction_id, status=AuctionStatus.ACTIVE
        ).update(status=AuctionStatus.CANCELLED, ended_at=self._clock())
        if not updated:
            await auction.refresh_from_db()
            raise AuctionNotActiveError(auction_id, AuctionStatus(auction.status).value)

        await auction.refresh_from_db()
        logger.info(f"Auction {auction_id} cancelled")

        await safe_publish(self._publish, AuctionEventType.AUCTION_CANCELLED, {
            "auction_id": auction_id,
            "item_name": auction.item_name,
        })
        return auction

    async def cancel_all_active(self) -> int:
        """진행 중인 모든 경매 취소 (정리용)"""
        auction_ids = await Auction.filter(status=AuctionStatus.ACTIVE).values_list("id", flat=True)
        for auction_id in auction_ids:
            self.scheduler.cancel(auction_id)

        count = 0
        if auction_ids:
            count = await Auction.filter(
                id__in=list(auction_ids), status=AuctionStatus.ACTIVE
            ).update(status=AuctionStatus.CANCELLED, ended_at=self._clock())

        logger.info(f"Cancelled {count} active auctions")

        await safe_publish(self._publish, AuctionEventType.AUCTIONS_CLEARED, {"count": count})
        return count

    # =========================================================================
    # 타이머 복구 (Recovery)
    # =========================================================================

    async def rehydrate(self) -> int:
        """
        재시작 시 진행 중 경매의 마감 타이머 복구

        저장된 ends_at이 이미 지났으면 즉시 정산됩니다.

        Returns:
            등록한 타이머 수
        """
        rows = await Auction.filter(status=AuctionStatus.ACTIVE).values_list("id", "ends_at")
        for auction_id, ends_at in rows:
            self.scheduler.schedule(auction_id, ends_at)

        logger.info(f"Rehydrated {len(rows)} auction timers")
        return len(rows)

    async def sweep_overdue(self) -> int:
        """
        마감이 지났는데 타이머가 없는 진행 중 경매를 다시 정산 (크론잡용)

        정산 실패로 active에 남은 경매가 조용히 버려지지 않게 합니다.

        Returns:
            다시 등록한 경매 수
        """
        rows = await Auction.filter(
            status=AuctionStatus.ACTIVE,
            ends_at__lte=self._clock()
        ).values_list("id", "ends_at")

        count = 0
        for auction_id, ends_at in rows:
            if self.scheduler.is_scheduled(auction_id):
                continue
            logger.warning(f"Auction {auction_id} overdue without timer, retrying settlement")
            self.scheduler.schedule(auction_id, ends_at)
            count += 1

        return count

    async def _on_timer_expired(self, auction_id: int) -> Optional[SettlementResult]:
        result = await self.settlement.settle(auction_id, triggered_by_timer=True)

        # 연장되어 미뤄졌는데 새 타이머가 없으면 저장된 ends_at으로 다시 등록
        if result is None and not self.scheduler.is_scheduled(auction_id):
            auction = await Auction.get_or_none(id=auction_id)
            if auction is not None and auction.status == AuctionStatus.ACTIVE:
                self.scheduler.schedule(auction_id, auction.ends_at)
        return result

    # =========================================================================
    # 조회 (Query)
    # =========================================================================

    async def list_active(self, requesting_user_id: int) -> ActiveAuctions:
        """진행 중 경매 + 입찰 현황 + 요청자의 사용 가능 DKP"""
        auctions = await Auction.filter(status=AuctionStatus.ACTIVE).order_by("-created_at", "-id")

        bids_by_auction: Dict[int, List[AuctionBid]] = {a.id: [] for a in auctions}
        if auctions:
            all_bids = await AuctionBid.filter(
                auction_id__in=list(bids_by_auction)
            ).order_by("auction_id", "-amount", "created_at").prefetch_related("user")
            for bid in all_bids:
                bids_by_auction[bid.auction_id].append(bid)

        available = await LedgerService.available(requesting_user_id)

        return ActiveAuctions(
            auctions=[ActiveAuction(auction=a, bids=bids_by_auction[a.id]) for a in auctions],
            available_dkp=available,
        )

    async def get_history(
        self,
        limit: int = DKP.AUCTION_HISTORY_LIMIT,
        offset: int = 0
    ) -> Tuple[List[AuctionHistoryEntry], int]:
        """
        종료된 경매 기록 (최신순)

        Returns:
            (기록 목록, 전체 건수)
        """
        query = Auction.filter(status__in=[AuctionStatus.COMPLETED, AuctionStatus.CANCELLED])
        total = await query.count()

        auctions = await query.order_by("-ended_at", "-id").offset(offset).limit(limit).prefetch_related("winner")
        if not auctions:
            return [], total

        auction_ids = [a.id for a in auctions]
        count_rows = await (
            AuctionBid.filter(auction_id__in=auction_ids)
            .annotate(bid_count=Count("id"))
            .group_by("auction_id")
            .values("auction_id", "bid_count")
        )
        bid_counts = {row["auction_id"]: row["bid_count"] for row in count_rows}

        rolls_by_auction: Dict[int, List[AuctionRoll]] = {}
        tie_ids = [a.id for a in auctions if a.was_tie]
        if tie_ids:
            rolls = await AuctionRoll.filter(
                auction_id__in=tie_ids
            ).order_by("auction_id", "-roll_result").prefetch_related("user")
            for roll in rolls:
                rolls_by_auction.setdefault(roll.auction_id, []).append(roll)

        entries = [
            AuctionHistoryEntry(
                auction=a,
                bid_count=bid_counts.get(a.id, 0),
                rolls=rolls_by_auction.get(a.id, []),
            )
            for a in auctions
        ]
        return entries, total

    async def get_rolls(self, auction_id: int) -> List[AuctionRoll]:
        """경매의 동점 주사위 기록 (주사위 높은 순)"""
        return await AuctionRoll.filter(
            auction_id=auction_id
        ).order_by("-roll_result").prefetch_related("user")

    async def get_bids(self, auction_id: int) -> List[AuctionBid]:
        """경매의 입찰 목록 (금액 높은 순)"""
        return await AuctionBid.filter(
            auction_id=auction_id
        ).order_by("-amount", "created_at").prefetch_related("user")
