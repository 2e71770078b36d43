"""
경매 정산 서비스

경매를 마감하고 낙찰자를 정해 DKP를 차감합니다.
상태 전이(active -> 종료)와 모든 변경이 하나의 트랜잭션 안에서 일어나므로
타이머 중복 실행이나 수동 마감과의 경합에도 정산은 최대 한 번만 반영됩니다.
"""
import logging
import random
from typing import Optional

from tortoise.transactions import in_transaction

from config.auction import AUCTION, AuctionConfig
from exceptions import SettlementError
from models.auction import Auction, AuctionStatus
from models.auction_bid import AuctionBid
from models.auction_roll import AuctionRoll
from service.auction.auction_result import SettlementResult
from service.auction.tie_break import resolve_tie
from service.event.event_bus import AuctionEventType, Publisher, safe_publish
from service.ledger.ledger_service import LedgerService
from utils.time_utils import Clock, as_utc, utc_now

logger = logging.getLogger(__name__)


class _StatusGuardLost(Exception):
    """같은 트랜잭션 안에서 active 조건부 갱신이 0건 -> 롤백 후 no-op 처리"""


class _NotYetDue(Exception):
    """타이머 정산 시점에 마감이 연장되어 있음 -> 변경 없이 종료"""


class SettlementService:
    """경매 정산 비즈니스 로직"""

    def __init__(
        self,
        publish: Publisher | None = None,
        rng: random.Random | None = None,
        clock: Clock = utc_now,
        config: AuctionConfig = AUCTION
    ):
        self._publish = publish
        self._rng = rng
        self._clock = clock
        self._config = config

    async def settle(
        self,
        auction_id: int,
        performed_by: Optional[int] = None,
        triggered_by_timer: bool = False
    ) -> Optional[SettlementResult]:
        """
        경매 정산

        Args:
            auction_id: 경매 ID
            performed_by: 수동 마감한 오피서 ID (타이머 마감이면 None)
            triggered_by_timer: 타이머 경로면 True. 잠금 후 ends_at이 아직 미래면
                (마감 직전 입찰로 연장됨) 아무것도 바꾸지 않고 None

        Returns:
            정산 결과. 이미 종료된 경매면 None (아무 변경 없음)

        Raises:
            SettlementError: 저장소 오류 등으로 정산 실패 (경매는 active로 남음)
        """
        try:
            result = await self._settle_in_transaction(auction_id, performed_by, triggered_by_timer)
        except _NotYetDue:
            logger.info(f"Auction {auction_id} was extended, timer settlement deferred")
            return None
        except _StatusGuardLost:
            result = None
        except Exception as e:
            logger.error(f"Settlement failed for auction {auction_id}: {e}", exc_info=True)
            raise SettlementError(auction_id, str(e)) from e

        if result is None:
            logger.warning(f"Auction {auction_id} is not active, settlement skipped")
            return None

        if result.status == AuctionStatus.COMPLETED:
            logger.info(
                f"Auction {auction_id} settled: winner={result.winner_id}, "
                f"bid={result.winning_bid}, tie={result.was_tie}"
            )
        else:
            logger.info(f"Auction {auction_id} cancelled at settlement: no valid bids")

        await safe_publish(self._publish, AuctionEventType.AUCTION_ENDED, result.to_event_data())
        return result

    async def _settle_in_transaction(
        self,
        auction_id: int,
        performed_by: Optional[int],
        triggered_by_timer: bool = False
    ) -> Optional[SettlementResult]:
        async with in_transaction() as conn:
            # Guard: 진행 중 경매만 정산
            auction = await Auction.filter(id=auction_id).using_db(conn).select_for_update().first()
            if auction is None or auction.status != AuctionStatus.ACTIVE:
                return None

            now = self._clock()

            # Guard: 타이머 대기 중 들어온 입찰이 마감을 연장했으면 다시 등록된 타이머에 맡김
            if triggered_by_timer and as_utc(auction.ends_at) > as_utc(now):
                raise _NotYetDue()

            # 1. 입찰 (금액 내림차순, 동액이면 먼저 입찰한 순)
            bids = await AuctionBid.filter(
                auction_id=auction_id
            ).using_db(conn).order_by("-amount", "created_at", "id")

            # 2. 현재 잔액으로 유효 입찰만 남김 (장부 행이 없으면 무효)
            balances = await LedgerService.balances([b.user_id for b in bids], using_db=conn)
            valid_bids = [b for b in bids if b.user_id in balances and balances[b.user_id] >= b.amount]

            # 3. 유효 입찰 없음 -> 유찰
            if not valid_bids:
                updated = await Auction.filter(
                    id=auction_id, status=AuctionStatus.ACTIVE
                ).using_db(conn).update(status=AuctionStatus.CANCELLED, ended_at=now)
                if updated != 1:
                    raise _StatusGuardLost()
                return SettlementResult(
                    auction_id=auction_id,
                    item_name=auction.item_name,
                    status=AuctionStatus.CANCELLED,
                )

            # 4. 최고 유효 입찰액의 입찰자들
            top_amount = valid_bids[0].amount
            top_bids = [b for b in valid_bids if b.amount == top_amount]

            rolls = []
            winning_roll = None
            was_tie = len(top_bids) > 1

            if not was_tie:
                winner_id = top_bids[0].user_id
            else:
                logger.info(
                    f"Tie detected for auction {auction_id}: "
                    f"{len(top_bids)} bidders at {top_amount} DKP"
                )
                tie = resolve_tie([b.user_id for b in top_bids], rng=self._rng, config=self._config)
                winner_id = tie.winner_id
                winning_roll = tie.winning_roll
                rolls = tie.rolls

                for roll in rolls:
                    await AuctionRoll.create(
                        auction_id=auction_id,
                        user_id=roll.user_id,
                        bid_amount=top_amount,
                        roll_result=roll.roll,
                        rerolls=list(roll.rerolls),
                        is_winner=roll.is_winner,
                        using_db=conn
                    )

            # 5. 낙찰자 차감 + 경매 종료 (active 조건부 갱신)
            if was_tie:
                reason = f"경매 낙찰 (주사위 {winning_roll}): {auction.item_name}"
            else:
                reason = f"경매 낙찰: {auction.item_name}"
            if performed_by is None:
                reason = f"{reason} (자동 마감)"

            await LedgerService.debit(
                winner_id,
                top_amount,
                reason,
                using_db=conn,
                auction_id=auction_id,
                performed_by=performed_by
            )

            updated = await Auction.filter(
                id=auction_id, status=AuctionStatus.ACTIVE
            ).using_db(conn).update(
                status=AuctionStatus.COMPLETED,
                winner_id=winner_id,
                winning_bid=top_amount,
                was_tie=was_tie,
                winning_roll=winning_roll,
                ended_at=now
            )
            if updated != 1:
                raise _StatusGuardLost()

            return SettlementResult(
                auction_id=auction_id,
                item_name=auction.item_name,
                status=AuctionStatus.COMPLETED,
                winner_id=winner_id,
                winning_bid=top_amount,
                was_tie=was_tie,
                winning_roll=winning_roll,
                rolls=rolls,
            )
