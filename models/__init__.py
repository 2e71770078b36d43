from models.users import User, UserRole
from models.member_dkp import MemberDKP
from models.dkp_transaction import DKPTransaction
from models.auction import Auction, AuctionStatus, ItemRarity
from models.auction_bid import AuctionBid
from models.auction_roll import AuctionRoll


async def get_account_by_discord_id(discord_id: int) -> User | None:
    return await User.get_or_none(discord_id=discord_id, is_active=True)


__all__ = [
    "User", "UserRole",
    "MemberDKP", "DKPTransaction",
    "Auction", "AuctionStatus", "ItemRarity",
    "AuctionBid", "AuctionRoll",
    "get_account_by_discord_id",
]
