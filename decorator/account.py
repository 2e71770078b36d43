from discord import Interaction, app_commands

from models import get_account_by_discord_id
from exceptions import PermissionDeniedError
from models.users import UserRole


def requires_registration():
    async def predicate(interaction: Interaction):
        user = await get_account_by_discord_id(interaction.user.id)
        if user is None:
            await interaction.response.send_message(
                "❗ 길드 명단에 등록되지 않았습니다. 오피서에게 `/길드원등록`을 요청해주세요.",
                ephemeral=True
            )
            return False
        return True

    return app_commands.check(predicate)


def requires_role(role: UserRole):
    async def predicate(interaction: Interaction):
        # 서버 관리자는 명단과 무관하게 통과 (첫 오피서 등록용)
        permissions = getattr(interaction.user, "guild_permissions", None)
        if permissions is not None and permissions.administrator:
            return True

        user = await get_account_by_discord_id(interaction.user.id)
        if user is None or not user.has_role(role):
            await interaction.response.send_message(
                f"⛔ {PermissionDeniedError(role.value).message}",
                ephemeral=True
            )
            return False
        return True

    return app_commands.check(predicate)
