"""
DKP 커맨드 (잔액, 순위, 지급, 길드원 등록)
"""
import logging
from typing import Optional

import discord
from discord import app_commands
from discord.ext import commands

from bot import GUILD_IDS
from config.auction import DKP
from config.ui import EmbedColor
from decorator.account import requires_registration, requires_role
from exceptions import DKPBotError
from models import get_account_by_discord_id
from models.users import UserRole
from service.ledger.ledger_service import LedgerService
from service.user_service import register_member

logger = logging.getLogger(__name__)


class DKPCommand(commands.Cog):
    """DKP 관련 명령어"""

    def __init__(self, bot: commands.Bot):
        self.bot = bot

    @app_commands.command(name="내dkp", description="💎 내 DKP와 최근 내역")
    @app_commands.guilds(*GUILD_IDS)
    @requires_registration()
    async def my_dkp(self, interaction: discord.Interaction):
        user = await get_account_by_discord_id(interaction.user.id)
        balance = await LedgerService.balance(user.id)
        committed = await LedgerService.committed(user.id)
        history = await LedgerService.history(user.id, limit=10)

        embed = discord.Embed(
            title=f"💎 {user.get_name()}의 DKP",
            color=EmbedColor.DEFAULT
        )
        embed.add_field(name="잔액", value=f"{balance} DKP", inline=True)
        embed.add_field(name="입찰 중", value=f"{committed} DKP", inline=True)
        embed.add_field(name="사용 가능", value=f"{balance - committed} DKP", inline=True)

        if history:
            lines = [f"`{tx.amount:+d}` {tx.reason}" for tx in history]
            embed.add_field(name="최근 내역", value="\n".join(lines)[:1024], inline=False)

        await interaction.response.send_message(embed=embed, ephemeral=True)

    @app_commands.command(name="dkp순위", description="🏆 DKP 순위")
    @app_commands.guilds(*GUILD_IDS)
    async def leaderboard(self, interaction: discord.Interaction):
        rows = await LedgerService.leaderboard(DKP.LEADERBOARD_LIMIT)
        medals = {1: "🥇", 2: "🥈", 3: "🥉"}
        lines = [
            f"{medals.get(rank, f'{rank}.')} {row.user.get_name()} - {row.current_dkp} DKP"
            for rank, row in enumerate(rows, start=1)
        ]
        embed = discord.Embed(
            title="🏆 DKP 순위",
            description="\n".join(lines) or "등록된 길드원이 없습니다.",
            color=EmbedColor.AUCTION
        )
        await interaction.response.send_message(embed=embed)

    # ==================== 오피서 ====================

    @app_commands.command(name="dkp지급", description="🎁 DKP 지급 (오피서)")
    @app_commands.guilds(*GUILD_IDS)
    @app_commands.describe(member="받을 길드원", amount="지급량", reason="사유")
    @requires_role(UserRole.OFFICER)
    async def award(
        self,
        interaction: discord.Interaction,
        member: discord.Member,
        amount: app_commands.Range[int, 1, DKP.DEFAULT_CAP],
        reason: Optional[str] = None
    ):
        officer = await get_account_by_discord_id(interaction.user.id)
        target = await get_account_by_discord_id(member.id)
        if target is None:
            await interaction.response.send_message("❌ 등록되지 않은 길드원입니다.", ephemeral=True)
            return

        try:
            credited = await LedgerService.award(
                target.id, amount, reason or "오피서 지급", performed_by=officer.id if officer else None
            )
        except DKPBotError as e:
            await interaction.response.send_message(f"❌ {e.message}", ephemeral=True)
            return

        if credited < amount:
            message = (
                f"⚠️ {target.get_name()}님에게 {credited} DKP 지급 "
                f"(상한 {DKP.DEFAULT_CAP} DKP로 {amount - credited} DKP 미지급)"
            )
        else:
            message = f"✅ {target.get_name()}님에게 {credited} DKP 지급"
        await interaction.response.send_message(message, ephemeral=True)

    @app_commands.command(name="길드원등록", description="📝 길드원 등록 (오피서)")
    @app_commands.guilds(*GUILD_IDS)
    @requires_role(UserRole.OFFICER)
    async def register(
        self,
        interaction: discord.Interaction,
        member: discord.Member,
        character_name: str,
        character_class: Optional[str] = None
    ):
        try:
            user = await register_member(member.id, character_name, character_class)
        except DKPBotError as e:
            await interaction.response.send_message(f"❌ {e.message}", ephemeral=True)
            return
        await interaction.response.send_message(
            f"✅ {member.mention} → **{user.get_name()}** 등록 완료",
            ephemeral=True
        )


async def setup(bot: commands.Bot):
    await bot.add_cog(DKPCommand(bot))
