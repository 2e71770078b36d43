"""
DKP 장부 서비스 통합 테스트
"""
import pytest

from exceptions import InsufficientDKPError, UserNotFoundError
from models import DKPTransaction, MemberDKP
from service.ledger.ledger_service import LedgerService
from service.user_service import deactivate_member, register_member

pytestmark = pytest.mark.integration


class TestBalance:
    async def test_missing_ledger_row_is_zero(self, member_factory):
        user = await member_factory("NoLedger", dkp=None)
        assert await LedgerService.balance(user.id) == 0
        assert await LedgerService.available(user.id) == 0

    async def test_balances_skips_missing_rows(self, member_factory):
        a = await member_factory("A", dkp=70)
        b = await member_factory("B", dkp=None)

        assert await LedgerService.balances([a.id, b.id]) == {a.id: 70}
        assert await LedgerService.balances([]) == {}


class TestCommitment:
    async def test_worked_example(self, member_factory, auction_factory, auction_service):
        """100 잔액: A에 10 선두(90) -> B에 90(0) -> A 추월당함(10)"""
        user = await member_factory("Bidder", dkp=100)
        rival = await member_factory("Rival", dkp=100)
        auction_a = await auction_factory("Item A")
        auction_b = await auction_factory("Item B")

        await auction_service.place_bid(auction_a.id, user.id, 10)
        assert await LedgerService.committed(user.id) == 10
        assert await LedgerService.available(user.id) == 90

        await auction_service.place_bid(auction_b.id, user.id, 90)
        assert await LedgerService.available(user.id) == 0

        await auction_service.place_bid(auction_a.id, rival.id, 11)
        assert await LedgerService.committed(user.id) == 90
        assert await LedgerService.available(user.id) == 10

    async def test_exclude_auction(self, member_factory, auction_factory, auction_service):
        user = await member_factory("Bidder", dkp=100)
        auction = await auction_factory()
        await auction_service.place_bid(auction.id, user.id, 60)

        assert await LedgerService.committed(user.id, exclude_auction_id=auction.id) == 0
        assert await LedgerService.available(user.id, exclude_auction_id=auction.id) == 100

    async def test_ended_auctions_not_committed(self, member_factory, auction_factory, auction_service):
        user = await member_factory("Bidder", dkp=100)
        auction = await auction_factory()
        await auction_service.place_bid(auction.id, user.id, 30)
        await auction_service.cancel_auction(auction.id)

        assert await LedgerService.committed(user.id) == 0


class TestDebit:
    async def test_debit_records_transaction(self, member_factory, auction_factory):
        from tortoise.transactions import in_transaction

        user = await member_factory("Winner", dkp=100)
        auction = await auction_factory()

        async with in_transaction() as conn:
            await LedgerService.debit(user.id, 40, "경매 낙찰: 테스트", using_db=conn, auction_id=auction.id)

        ledger = await MemberDKP.get(user_id=user.id)
        assert ledger.current_dkp == 60
        assert ledger.lifetime_spent == 40

        tx = await DKPTransaction.get(user_id=user.id)
        assert tx.amount == -40
        assert tx.auction_id == auction.id

    async def test_debit_never_goes_negative(self, member_factory):
        from tortoise.transactions import in_transaction

        user = await member_factory("Poor", dkp=10)

        with pytest.raises(InsufficientDKPError):
            async with in_transaction() as conn:
                await LedgerService.debit(user.id, 11, "초과 차감", using_db=conn)

        assert await LedgerService.balance(user.id) == 10
        assert await DKPTransaction.filter(user_id=user.id).count() == 0


class TestAward:
    async def test_award_creates_ledger_row(self, member_factory):
        user = await member_factory("New", dkp=None)

        credited = await LedgerService.award(user.id, 30, "레이드 참여")

        assert credited == 30
        assert await LedgerService.balance(user.id) == 30

    async def test_award_respects_cap(self, member_factory):
        user = await member_factory("Rich", dkp=240)

        assert await LedgerService.award(user.id, 30, "레이드 참여") == 10
        assert await LedgerService.balance(user.id) == 250
        assert await LedgerService.award(user.id, 5, "레이드 참여") == 0
        assert await DKPTransaction.filter(user_id=user.id).count() == 1

    async def test_custom_cap(self, member_factory):
        user = await member_factory("Capped", dkp=0)
        assert await LedgerService.award(user.id, 80, "보너스", cap=50) == 50

    async def test_invalid_amount(self, member_factory):
        user = await member_factory()
        with pytest.raises(ValueError):
            await LedgerService.award(user.id, 0, "없음")

    async def test_unknown_user(self, test_db):
        with pytest.raises(UserNotFoundError):
            await LedgerService.award(9999, 10, "없음")


class TestHistoryAndLeaderboard:
    async def test_history_newest_first(self, member_factory):
        user = await member_factory("H", dkp=0)
        await LedgerService.award(user.id, 10, "첫 지급")
        await LedgerService.award(user.id, 20, "두 번째 지급")

        history = await LedgerService.history(user.id)

        assert [tx.reason for tx in history] == ["두 번째 지급", "첫 지급"]

    async def test_leaderboard_excludes_inactive(self, member_factory):
        top = await member_factory("Top", dkp=200)
        await member_factory("Mid", dkp=100)
        gone = await member_factory("Gone", dkp=250)
        await deactivate_member(gone.discord_id)

        rows = await LedgerService.leaderboard(limit=10)

        assert [row.user.character_name for row in rows] == ["Top", "Mid"]
        assert rows[0].user_id == top.id


class TestRegisterMember:
    async def test_register_creates_user_and_ledger(self, test_db):
        user = await register_member(555, "Thrall", "Shaman")

        assert user.character_name == "Thrall"
        assert await LedgerService.balance(user.id) == 0
        assert await MemberDKP.filter(user_id=user.id).count() == 1

    async def test_reregister_updates_and_reactivates(self, test_db):
        user = await register_member(555, "Thrall")
        await deactivate_member(555)

        again = await register_member(555, "Go'el")

        assert again.id == user.id
        assert again.character_name == "Go'el"
        assert again.is_active is True
        assert await MemberDKP.filter(user_id=user.id).count() == 1
