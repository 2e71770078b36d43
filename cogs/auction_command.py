"""
경매 커맨드

DKP 경매 등록, 입찰, 조회, 마감을 제공합니다.
"""
import logging
from typing import Optional

import discord
from discord import app_commands
from discord.ext import commands

from bot import GUILD_IDS
from config.auction import AUCTION
from config.ui import UI, EmbedColor
from decorator.account import requires_registration, requires_role
from exceptions import DKPBotError
from models import get_account_by_discord_id
from models.auction import ItemRarity
from models.users import UserRole
from service.auction.auction_service import AuctionService
from service.notification.auction_notifier import discord_timestamp

logger = logging.getLogger(__name__)

RARITY_CHOICES = [
    app_commands.Choice(name="일반", value=ItemRarity.COMMON.value),
    app_commands.Choice(name="고급", value=ItemRarity.UNCOMMON.value),
    app_commands.Choice(name="희귀", value=ItemRarity.RARE.value),
    app_commands.Choice(name="영웅", value=ItemRarity.EPIC.value),
    app_commands.Choice(name="전설", value=ItemRarity.LEGENDARY.value),
]


class AuctionCommand(commands.Cog):
    """경매 커맨드"""

    def __init__(self, bot: commands.Bot):
        self.bot = bot

    @property
    def service(self) -> AuctionService:
        return self.bot.auction_service

    async def _reply_error(self, interaction: discord.Interaction, error: DKPBotError):
        if interaction.response.is_done():
            await interaction.followup.send(f"❌ {error.message}", ephemeral=True)
        else:
            await interaction.response.send_message(f"❌ {error.message}", ephemeral=True)

    # ==================== 조회 ====================

    @app_commands.command(name="경매목록", description="🏛️ 진행 중인 경매 보기")
    @app_commands.guilds(*GUILD_IDS)
    @requires_registration()
    async def list_auctions(self, interaction: discord.Interaction):
        user = await get_account_by_discord_id(interaction.user.id)
        active = await self.service.list_active(user.id)

        embed = discord.Embed(
            title=f"🏛️ 진행 중인 경매 ({len(active.auctions)}건)",
            description=f"💎 사용 가능 DKP: **{active.available_dkp}**",
            color=EmbedColor.AUCTION
        )

        if not active.auctions:
            embed.description += "\n\n진행 중인 경매가 없습니다."

        for entry in active.auctions[:25]:
            auction = entry.auction
            lines = [
                f"마감: {discord_timestamp(auction.ends_at)} | 최소 {auction.min_bid} DKP",
            ]
            if entry.bids:
                for bid in entry.bids[:UI.MAX_BIDS_SHOWN]:
                    lines.append(f"• {bid.user.get_name()}: {bid.amount} DKP")
            else:
                lines.append("아직 입찰이 없습니다.")
            if entry.has_tie:
                lines.append("⚖️ 현재 동점 (마감 시 주사위)")

            value = "\n".join(lines)[:UI.MAX_EMBED_FIELD_VALUE]
            embed.add_field(
                name=f"{auction.item_image} #{auction.id} {auction.item_name}",
                value=value,
                inline=False
            )

        await interaction.response.send_message(embed=embed, ephemeral=True)

    @app_commands.command(name="경매기록", description="📜 종료된 경매 기록")
    @app_commands.guilds(*GUILD_IDS)
    @requires_registration()
    async def auction_history(self, interaction: discord.Interaction, page: Optional[int] = 1):
        page = max(1, page or 1)
        limit = 10
        entries, total = await self.service.get_history(limit=limit, offset=(page - 1) * limit)

        embed = discord.Embed(
            title="📜 경매 기록",
            description=f"총 {total}건 | {page}페이지",
            color=EmbedColor.DEFAULT
        )
        for entry in entries:
            auction = entry.auction
            if auction.winner_id:
                result = f"🏆 {auction.winner.get_name()} - {auction.winning_bid} DKP"
                if auction.was_tie:
                    result += f" (🎲 {auction.winning_roll})"
            else:
                result = "📭 유찰/취소"
            embed.add_field(
                name=f"#{auction.id} {auction.item_name}",
                value=f"{result}\n입찰 {entry.bid_count}건 | {discord_timestamp(auction.ended_at, 'f')}",
                inline=False
            )

        await interaction.response.send_message(embed=embed, ephemeral=True)

    # ==================== 입찰 ====================

    @app_commands.command(name="입찰", description="💰 경매에 입찰")
    @app_commands.guilds(*GUILD_IDS)
    @app_commands.describe(auction_id="경매 번호", amount="입찰 DKP")
    @requires_registration()
    async def bid(self, interaction: discord.Interaction, auction_id: int, amount: int):
        user = await get_account_by_discord_id(interaction.user.id)
        try:
            result = await self.service.place_bid(auction_id, user.id, amount)
        except DKPBotError as e:
            logger.info(f"Bid rejected for user {user.id} on auction {auction_id}: {e.reason}")
            await self._reply_error(interaction, e)
            return

        message = f"✅ 경매 #{auction_id}에 **{amount} DKP** 입찰 완료!"
        if result.time_extended:
            message += f"\n⏰ 마감이 {discord_timestamp(result.new_ends_at)}로 연장되었습니다."
        await interaction.response.send_message(message, ephemeral=True)

    # ==================== 오피서 ====================

    @app_commands.command(name="경매등록", description="🛠️ 새 경매 등록 (오피서)")
    @app_commands.guilds(*GUILD_IDS)
    @app_commands.describe(
        item_name="아이템 이름",
        min_bid="최소 입찰가",
        duration_minutes="진행 시간 (분)",
        rarity="아이템 등급"
    )
    @app_commands.choices(rarity=RARITY_CHOICES)
    @requires_role(UserRole.OFFICER)
    async def create(
        self,
        interaction: discord.Interaction,
        item_name: str,
        min_bid: Optional[int] = None,
        duration_minutes: Optional[int] = None,
        rarity: Optional[app_commands.Choice[str]] = None
    ):
        officer = await get_account_by_discord_id(interaction.user.id)
        duration = duration_minutes * 60 if duration_minutes is not None else AUCTION.DEFAULT_DURATION_SECONDS
        try:
            auction = await self.service.create_auction(
                item_name,
                min_bid=min_bid,
                duration_seconds=duration,
                created_by=officer.id if officer else None,
                item_rarity=ItemRarity(rarity.value) if rarity else ItemRarity.EPIC
            )
        except DKPBotError as e:
            await self._reply_error(interaction, e)
            return

        await interaction.response.send_message(
            f"✅ 경매 #{auction.id} **{auction.item_name}** 등록 완료 (마감 {discord_timestamp(auction.ends_at)})",
            ephemeral=True
        )

    @app_commands.command(name="경매마감", description="🔨 경매 즉시 마감 (오피서)")
    @app_commands.guilds(*GUILD_IDS)
    @requires_role(UserRole.OFFICER)
    async def close(self, interaction: discord.Interaction, auction_id: int):
        officer = await get_account_by_discord_id(interaction.user.id)
        await interaction.response.defer(ephemeral=True, thinking=True)
        try:
            result = await self.service.close_auction(auction_id, performed_by=officer.id if officer else None)
        except DKPBotError as e:
            await self._reply_error(interaction, e)
            return

        if result is None:
            await interaction.followup.send("⚠️ 이미 종료된 경매입니다.", ephemeral=True)
        elif result.winner_id is None:
            await interaction.followup.send(f"📭 경매 #{auction_id} 유찰 처리되었습니다.", ephemeral=True)
        else:
            await interaction.followup.send(
                f"🔨 경매 #{auction_id} 마감: {result.winning_bid} DKP 낙찰",
                ephemeral=True
            )

    @app_commands.command(name="경매취소", description="🚫 경매 취소 (오피서)")
    @app_commands.guilds(*GUILD_IDS)
    @requires_role(UserRole.OFFICER)
    async def cancel(self, interaction: discord.Interaction, auction_id: int):
        try:
            auction = await self.service.cancel_auction(auction_id)
        except DKPBotError as e:
            await self._reply_error(interaction, e)
            return
        await interaction.response.send_message(f"🚫 경매 #{auction.id} 취소 완료", ephemeral=True)

    @app_commands.command(name="경매정리", description="🧹 진행 중 경매 전체 취소 (관리자)")
    @app_commands.guilds(*GUILD_IDS)
    @requires_role(UserRole.ADMIN)
    async def clear(self, interaction: discord.Interaction):
        count = await self.service.cancel_all_active()
        await interaction.response.send_message(f"🧹 진행 중 경매 {count}건 취소 완료", ephemeral=True)


async def setup(bot: commands.Bot):
    await bot.add_cog(AuctionCommand(bot))
