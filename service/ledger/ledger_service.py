"""
DKP 장부 서비스

잔액 조회, 다른 경매에 묶인 선두 입찰액(commitment) 계산, 정산 차감, 상한 적용 지급을 담당합니다.
모든 메서드는 using_db를 받아 호출자의 트랜잭션에 참여할 수 있습니다.
"""
import logging
from typing import Dict, Iterable, List, Optional

from tortoise.functions import Max
from tortoise.transactions import in_transaction

from config.auction import DKP
from exceptions import InsufficientDKPError, UserNotFoundError
from models.auction import AuctionStatus
from models.auction_bid import AuctionBid
from models.dkp_transaction import DKPTransaction
from models.member_dkp import MemberDKP
from models.users import User

logger = logging.getLogger(__name__)


class LedgerService:
    """DKP 장부 비즈니스 로직"""

    # =========================================================================
    # 조회 (Balance / Commitment)
    # =========================================================================

    @staticmethod
    async def balance(user_id: int, using_db=None) -> int:
        """현재 DKP 잔액 (장부 행이 없으면 0)"""
        rows = await MemberDKP.filter(user_id=user_id).using_db(using_db).values_list(
            "current_dkp", flat=True
        )
        return rows[0] if rows else 0

    @staticmethod
    async def balances(user_ids: Iterable[int], using_db=None) -> Dict[int, int]:
        """
        여러 사용자의 잔액을 한 번의 쿼리로 조회

        장부 행이 없는 사용자는 결과에 포함되지 않습니다.
        """
        ids = list(set(user_ids))
        if not ids:
            return {}
        rows = await MemberDKP.filter(user_id__in=ids).using_db(using_db).values_list(
            "user_id", "current_dkp"
        )
        return {user_id: current_dkp for user_id, current_dkp in rows}

    @staticmethod
    async def committed(
        user_id: int,
        exclude_auction_id: Optional[int] = None,
        using_db=None
    ) -> int:
        """
        다른 진행 중 경매에 묶인 DKP 합계

        사용자가 현재 최고 입찰자인 경매의 입찰액만 합산합니다.
        다른 사람에게 밀린 입찰은 묶인 것으로 보지 않습니다.

        Args:
            user_id: 사용자 ID
            exclude_auction_id: 합산에서 제외할 경매 (지금 입찰하려는 경매)
            using_db: 트랜잭션 커넥션
        """
        query = AuctionBid.filter(user_id=user_id, auction__status=AuctionStatus.ACTIVE)
        if exclude_auction_id is not None:
            query = query.exclude(auction_id=exclude_auction_id)

        my_bids = await query.using_db(using_db).values_list("auction_id", "amount")
        if not my_bids:
            return 0

        auction_ids = list({auction_id for auction_id, _ in my_bids})
        max_rows = await (
            AuctionBid.filter(auction_id__in=auction_ids)
            .using_db(using_db)
            .annotate(max_amount=Max("amount"))
            .group_by("auction_id")
            .values("auction_id", "max_amount")
        )
        max_by_auction = {row["auction_id"]: row["max_amount"] for row in max_rows}

        return sum(
            amount for auction_id, amount in my_bids
            if amount == max_by_auction.get(auction_id)
        )

    @staticmethod
    async def available(
        user_id: int,
        exclude_auction_id: Optional[int] = None,
        using_db=None
    ) -> int:
        """
        입찰 가능 DKP = 잔액 - 다른 경매에 묶인 선두 입찰액

        호출할 때마다 현재 데이터로 다시 계산합니다. 잔액을 잠그지 않는 사전 검사이며,
        실제 차감 가능 여부는 정산 시점에 다시 확인합니다.
        """
        balance = await LedgerService.balance(user_id, using_db=using_db)
        committed = await LedgerService.committed(
            user_id, exclude_auction_id=exclude_auction_id, using_db=using_db
        )
        return balance - committed

    # =========================================================================
    # 변경 (Debit / Award)
    # =========================================================================

    @staticmethod
    async def debit(
        user_id: int,
        amount: int,
        reason: str,
        using_db,
        auction_id: Optional[int] = None,
        performed_by: Optional[int] = None
    ) -> MemberDKP:
        """
        낙찰 차감 (정산 트랜잭션 안에서만 호출)

        Raises:
            InsufficientDKPError: 잔액 부족 (잔액을 음수로 만들지 않음)
        """
        ledger = await MemberDKP.filter(user_id=user_id).using_db(using_db).select_for_update().first()
        current = ledger.current_dkp if ledger else 0
        if ledger is None or current < amount:
            raise InsufficientDKPError(amount, current)

        ledger.current_dkp -= amount
        ledger.lifetime_spent += amount
        await ledger.save(
            using_db=using_db,
            update_fields=["current_dkp", "lifetime_spent", "updated_at"]
        )

        await DKPTransaction.create(
            user_id=user_id,
            amount=-amount,
            reason=reason,
            performed_by_id=performed_by,
            auction_id=auction_id,
            using_db=using_db
        )

        logger.info(f"Debited {amount} DKP from user {user_id} (auction={auction_id})")
        return ledger

    @staticmethod
    async def award(
        user_id: int,
        amount: int,
        reason: str,
        performed_by: Optional[int] = None,
        cap: int = DKP.DEFAULT_CAP,
        using_db=None
    ) -> int:
        """
        DKP 지급 (상한 적용)

        Returns:
            실제로 지급된 DKP (상한에 막히면 요청보다 작을 수 있음)
        """
        if amount <= 0:
            raise ValueError("지급량은 1 이상이어야 합니다")

        if using_db is not None:
            return await LedgerService._award(user_id, amount, reason, performed_by, cap, using_db)

        async with in_transaction() as conn:
            return await LedgerService._award(user_id, amount, reason, performed_by, cap, conn)

    @staticmethod
    async def _award(user_id, amount, reason, performed_by, cap, conn) -> int:
        if not await User.filter(id=user_id).using_db(conn).exists():
            raise UserNotFoundError(user_id)

        ledger = await MemberDKP.filter(user_id=user_id).using_db(conn).select_for_update().first()
        if ledger is None:
            ledger = await MemberDKP.create(user_id=user_id, using_db=conn)

        credited = max(0, min(amount, cap - ledger.current_dkp))
        if credited == 0:
            logger.info(f"User {user_id} already at DKP cap ({cap}), award skipped")
            return 0

        ledger.current_dkp += credited
        ledger.lifetime_gained += credited
        await ledger.save(
            using_db=conn,
            update_fields=["current_dkp", "lifetime_gained", "updated_at"]
        )

        await DKPTransaction.create(
            user_id=user_id,
            amount=credited,
            reason=reason,
            performed_by_id=performed_by,
            using_db=conn
        )

        logger.info(f"Awarded {credited}/{amount} DKP to user {user_id} (cap={cap})")
        return credited

    # =========================================================================
    # 내역 (History)
    # =========================================================================

    @staticmethod
    async def history(user_id: int, limit: int = DKP.HISTORY_LIMIT) -> List[DKPTransaction]:
        """최근 거래 내역 (최신순)"""
        return await DKPTransaction.filter(
            user_id=user_id
        ).order_by("-created_at", "-id").limit(limit).prefetch_related("auction")

    @staticmethod
    async def leaderboard(limit: int = DKP.LEADERBOARD_LIMIT) -> List[MemberDKP]:
        """활성 길드원 DKP 순위"""
        return await MemberDKP.filter(
            user__is_active=True
        ).order_by("-current_dkp").limit(limit).prefetch_related("user")
