import logging
from typing import Optional

from tortoise.transactions import in_transaction

from exceptions import DKPBotError
from models import MemberDKP, User, UserRole

logger = logging.getLogger(__name__)


async def register_member(
    discord_id: int,
    character_name: str,
    character_class: Optional[str] = None,
    role: Optional[UserRole] = None
) -> User:
    """
    길드원 등록 (이미 있으면 캐릭터 정보 갱신 + 재활성화)

    장부 행도 함께 만들어 잔액 0에서 시작합니다.
    """
    character_name = (character_name or "").strip()
    if not character_name:
        raise DKPBotError("캐릭터 이름이 필요합니다.")

    async with in_transaction() as conn:
        user = await User.filter(discord_id=discord_id).using_db(conn).first()
        if user is None:
            user = await User.create(
                discord_id=discord_id,
                character_name=character_name,
                character_class=character_class,
                role=role or UserRole.MEMBER,
                using_db=conn
            )
            logger.info(f"Registered member {user.id} ({character_name}, discord={discord_id})")
        else:
            user.character_name = character_name
            user.character_class = character_class
            if role is not None:
                user.role = role
            user.is_active = True
            await user.save(using_db=conn)
            logger.info(f"Updated member {user.id} ({character_name})")

        if not await MemberDKP.filter(user_id=user.id).using_db(conn).exists():
            await MemberDKP.create(user_id=user.id, using_db=conn)

    return user


async def deactivate_member(discord_id: int) -> bool:
    """길드 탈퇴 처리 (기록 보존을 위해 삭제하지 않음)"""
    updated = await User.filter(discord_id=discord_id, is_active=True).update(is_active=False)
    if updated:
        logger.info(f"Deactivated member discord={discord_id}")
    return bool(updated)
