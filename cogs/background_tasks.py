"""배경 작업 Cog - 마감 지난 경매 재정산"""
import logging
from discord.ext import commands, tasks

from config.auction import AUCTION

logger = logging.getLogger(__name__)


class BackgroundTasksCog(commands.Cog):
    """주기적 배경 작업 관리"""

    def __init__(self, bot):
        self.bot = bot
        self.sweep_overdue_auctions.start()
        logger.info("BackgroundTasksCog initialized")

    def cog_unload(self):
        """Cog 언로드 시 작업 정지"""
        self.sweep_overdue_auctions.cancel()
        logger.info("BackgroundTasksCog unloaded")

    @tasks.loop(seconds=AUCTION.OVERDUE_SWEEP_INTERVAL_SECONDS)
    async def sweep_overdue_auctions(self):
        """타이머 없이 마감이 지난 경매 재정산"""
        try:
            count = await self.bot.auction_service.sweep_overdue()

            if count > 0:
                logger.info(f"🧹 Re-armed {count} overdue auctions")
            else:
                logger.debug("No overdue auctions")

        except Exception as e:
            logger.error(f"Failed to sweep overdue auctions: {e}", exc_info=True)

    @sweep_overdue_auctions.before_loop
    async def before_sweep(self):
        """봇 준비 대기"""
        await self.bot.wait_until_ready()
        logger.info("Background sweep task ready")


async def setup(bot):
    """Cog 로드"""
    await bot.add_cog(BackgroundTasksCog(bot))
