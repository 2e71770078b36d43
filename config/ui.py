"""Discord UI 관련 설정"""
from dataclasses import dataclass
from enum import IntEnum


class EmbedColor(IntEnum):
    """임베드 색상"""

    DEFAULT = 0x3498DB  # 파란색
    SUCCESS = 0x2ECC71  # 초록색
    WARNING = 0xF39C12  # 주황색
    ERROR = 0xE74C3C  # 빨간색
    AUCTION = 0x9B59B6  # 경매용 보라색
    TIE = 0xF1C40F  # 동점 금색
    RARITY_COMMON = 0x9D9D9D
    RARITY_UNCOMMON = 0x1EFF00
    RARITY_RARE = 0x0070DD
    RARITY_EPIC = 0xA335EE
    RARITY_LEGENDARY = 0xFF8000


@dataclass(frozen=True)
class UIConfig:
    """UI 설정"""

    MAX_EMBED_FIELD_VALUE: int = 1024
    """임베드 필드 값 최대 길이"""

    MAX_BIDS_SHOWN: int = 5
    """경매 목록에 표시할 입찰 수"""


UI = UIConfig()
