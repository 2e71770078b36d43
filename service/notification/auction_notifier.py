"""
경매 알림 서비스

EventBus를 구독해 경매 채널에 임베드를 보내고, 추월당한 입찰자에게 DM을 보냅니다.
알림 실패는 로그만 남기며 경매 처리에는 영향을 주지 않습니다.
"""
import logging
from datetime import datetime
from typing import Dict, Optional, Tuple

import discord

from config.ui import EmbedColor
from models.users import User
from service.event.event_bus import AuctionEvent, AuctionEventType, EventBus

logger = logging.getLogger(__name__)


def discord_timestamp(value: Optional[datetime], style: str = "R") -> str:
    """디스코드 타임스탬프 마크업 (<t:...:R>)"""
    if value is None:
        return "-"
    return f"<t:{int(value.timestamp())}:{style}>"


async def _load_users(user_ids) -> Dict[int, Tuple[str, int]]:
    """user_id -> (캐릭터 이름, discord_id)"""
    ids = [uid for uid in set(user_ids) if uid is not None]
    if not ids:
        return {}
    rows = await User.filter(id__in=ids).values_list("id", "character_name", "discord_id")
    return {uid: (name, discord_id) for uid, name, discord_id in rows}


def build_started_embed(data: dict) -> discord.Embed:
    embed = discord.Embed(
        title="🏛️ 경매 시작",
        description=f"**{data['item_name']}**",
        color=EmbedColor.AUCTION
    )
    embed.add_field(name="최소 입찰가", value=f"{data['min_bid']} DKP", inline=True)
    embed.add_field(name="마감", value=discord_timestamp(data.get("ends_at")), inline=True)
    embed.set_footer(text=f"경매 #{data['auction_id']} | /경매 입찰 로 참여하세요")
    return embed


def build_bid_embed(data: dict, bidder_name: str) -> discord.Embed:
    embed = discord.Embed(
        title="💰 새 입찰",
        description=f"**{bidder_name}**님이 **{data['amount']} DKP**에 입찰했습니다.",
        color=EmbedColor.DEFAULT
    )
    if data.get("time_extended"):
        embed.add_field(
            name="⏰ 마감 연장",
            value=f"마감 직전 입찰로 {discord_timestamp(data.get('new_ends_at'))}까지 연장되었습니다.",
            inline=False
        )
    embed.set_footer(text=f"경매 #{data['auction_id']}")
    return embed


def build_ended_embed(data: dict, names: Dict[int, str]) -> discord.Embed:
    if data["status"] != "completed":
        embed = discord.Embed(
            title="📭 유찰",
            description=f"**{data['item_name']}** 경매가 유효한 입찰 없이 종료되었습니다.",
            color=EmbedColor.WARNING
        )
        embed.set_footer(text=f"경매 #{data['auction_id']}")
        return embed

    winner_name = names.get(data["winner_id"], f"#{data['winner_id']}")
    embed = discord.Embed(
        title="🏆 낙찰",
        description=f"**{winner_name}**님이 **{data['item_name']}**을(를) **{data['winning_bid']} DKP**에 낙찰받았습니다.",
        color=EmbedColor.TIE if data.get("was_tie") else EmbedColor.SUCCESS
    )

    if data.get("was_tie"):
        lines = []
        for roll in data.get("rolls", []):
            name = names.get(roll["user_id"], f"#{roll['user_id']}")
            rerolls = roll.get("rerolls") or []
            reroll_text = f" → {' → '.join(str(r) for r in rerolls)}" if rerolls else ""
            crown = " 👑" if roll.get("is_winner") else ""
            lines.append(f"🎲 {name}: {roll['roll']}{reroll_text}{crown}")
        embed.add_field(name="동점 주사위", value="\n".join(lines) or "-", inline=False)

    embed.set_footer(text=f"경매 #{data['auction_id']}")
    return embed


class AuctionNotifier:
    """경매 이벤트 -> 디스코드 메시지"""

    def __init__(self, client: discord.Client, channel_id: int):
        self.client = client
        self.channel_id = channel_id

    def register(self, event_bus: EventBus) -> None:
        event_bus.subscribe(AuctionEventType.AUCTION_STARTED, self.on_auction_started)
        event_bus.subscribe(AuctionEventType.BID_PLACED, self.on_bid_placed)
        event_bus.subscribe(AuctionEventType.AUCTION_ENDED, self.on_auction_ended)
        event_bus.subscribe(AuctionEventType.AUCTION_CANCELLED, self.on_auction_cancelled)
        event_bus.subscribe(AuctionEventType.AUCTIONS_CLEARED, self.on_auctions_cleared)
        logger.info(f"AuctionNotifier registered (channel={self.channel_id})")

    async def _channel(self) -> Optional[discord.abc.Messageable]:
        if not self.channel_id:
            return None
        channel = self.client.get_channel(self.channel_id)
        if channel is None:
            channel = await self.client.fetch_channel(self.channel_id)
        return channel

    async def _send(self, embed: discord.Embed) -> None:
        channel = await self._channel()
        if channel is None:
            logger.debug("Auction channel not configured, skipping notification")
            return
        await channel.send(embed=embed)

    async def _dm(self, discord_id: int, embed: discord.Embed) -> None:
        try:
            target = await self.client.fetch_user(discord_id)
            await target.send(embed=embed)
        except discord.Forbidden:
            logger.warning(f"Cannot send DM to {discord_id} (DM disabled)")

    # =========================================================================
    # 이벤트 핸들러
    # =========================================================================

    async def on_auction_started(self, event: AuctionEvent) -> None:
        await self._send(build_started_embed(event.data))

    async def on_bid_placed(self, event: AuctionEvent) -> None:
        data = event.data
        users = await _load_users([data["user_id"], data.get("outbid_user_id")])
        bidder_name = users.get(data["user_id"], (f"#{data['user_id']}", None))[0]
        await self._send(build_bid_embed(data, bidder_name))

        outbid = users.get(data.get("outbid_user_id"))
        if outbid is not None:
            embed = discord.Embed(
                title="📉 입찰 추월",
                description=(
                    f"경매 #{data['auction_id']}에서 {bidder_name}님이 "
                    f"{data['amount']} DKP로 입찰해 선두를 빼앗겼습니다."
                ),
                color=EmbedColor.WARNING
            )
            await self._dm(outbid[1], embed)

    async def on_auction_ended(self, event: AuctionEvent) -> None:
        data = event.data
        user_ids = [data.get("winner_id")] + [r["user_id"] for r in data.get("rolls", [])]
        users = await _load_users(user_ids)
        names = {uid: name for uid, (name, _) in users.items()}
        await self._send(build_ended_embed(data, names))

    async def on_auction_cancelled(self, event: AuctionEvent) -> None:
        embed = discord.Embed(
            title="🚫 경매 취소",
            description=f"**{event.data['item_name']}** 경매가 취소되었습니다.",
            color=EmbedColor.ERROR
        )
        embed.set_footer(text=f"경매 #{event.data['auction_id']}")
        await self._send(embed)

    async def on_auctions_cleared(self, event: AuctionEvent) -> None:
        count = event.data["count"]
        if count == 0:
            return
        embed = discord.Embed(
            title="🧹 경매 정리",
            description=f"진행 중이던 경매 {count}건이 모두 취소되었습니다.",
            color=EmbedColor.ERROR
        )
        await self._send(embed)
