"""경매 서비스 반환 타입"""
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, List, Optional

from models.auction import Auction, AuctionStatus
from models.auction_bid import AuctionBid
from service.auction.tie_break import TieRoll


@dataclass
class BidResult:
    """입찰 수락 결과 (거절은 예외로 전달)"""

    auction_id: int
    user_id: int
    amount: int
    accepted: bool = True
    time_extended: bool = False
    new_ends_at: Optional[datetime] = None
    previous_leader_id: Optional[int] = None
    outbid_user_id: Optional[int] = None
    # 동액 입찰은 BID_TOO_LOW로 거절되므로 입찰 경로에서는 항상 None (이벤트 키 호환용)
    tie_with_user_id: Optional[int] = None

    def to_event_data(self) -> Dict[str, Any]:
        return {
            "auction_id": self.auction_id,
            "user_id": self.user_id,
            "amount": self.amount,
            "outbid_user_id": self.outbid_user_id,
            "tie_with_user_id": self.tie_with_user_id,
            "time_extended": self.time_extended,
            "new_ends_at": self.new_ends_at,
        }


@dataclass
class SettlementResult:
    """정산 결과"""

    auction_id: int
    item_name: str
    status: AuctionStatus
    winner_id: Optional[int] = None
    winning_bid: Optional[int] = None
    was_tie: bool = False
    winning_roll: Optional[int] = None
    rolls: List[TieRoll] = field(default_factory=list)

    @property
    def winner(self) -> Optional[int]:
        return self.winner_id

    def to_event_data(self) -> Dict[str, Any]:
        return {
            "auction_id": self.auction_id,
            "item_name": self.item_name,
            "status": self.status.value,
            "winner_id": self.winner_id,
            "winning_bid": self.winning_bid,
            "was_tie": self.was_tie,
            "winning_roll": self.winning_roll,
            "rolls": [
                {"user_id": r.user_id, "roll": r.roll, "rerolls": list(r.rerolls), "is_winner": r.is_winner}
                for r in self.rolls
            ],
        }


@dataclass
class ActiveAuction:
    """진행 중 경매 + 입찰 현황"""

    auction: Auction
    bids: List[AuctionBid]

    @property
    def current_bid(self) -> int:
        return self.bids[0].amount if self.bids else 0

    @property
    def highest_bidder_id(self) -> Optional[int]:
        return self.bids[0].user_id if self.bids else None

    @property
    def tied_user_ids(self) -> List[int]:
        tied = [b.user_id for b in self.bids if b.amount == self.current_bid]
        return tied if len(tied) > 1 else []

    @property
    def has_tie(self) -> bool:
        return bool(self.tied_user_ids)


@dataclass
class ActiveAuctions:
    auctions: List[ActiveAuction]
    available_dkp: int


@dataclass
class AuctionHistoryEntry:
    """종료된 경매 기록"""

    auction: Auction
    bid_count: int
    rolls: list = field(default_factory=list)
