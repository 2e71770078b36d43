"""
경매 모델

오피서가 등록한 아이템 경매의 상태를 관리합니다.
"""
from enum import Enum

from tortoise import fields, models


class AuctionStatus(str, Enum):
    """경매 상태 (active에서 한 번만 종료 상태로 전이)"""
    ACTIVE = "active"          # 진행 중
    COMPLETED = "completed"    # 낙찰 완료
    CANCELLED = "cancelled"    # 유효 입찰 없음 / 오피서 취소


class ItemRarity(str, Enum):
    """아이템 등급"""
    COMMON = "common"
    UNCOMMON = "uncommon"
    RARE = "rare"
    EPIC = "epic"
    LEGENDARY = "legendary"


class Auction(models.Model):
    """
    경매 정보

    - ends_at은 스나이핑 방지 연장으로만 늘어남 (감소 없음)
    - original_ends_at은 생성 시각 + 진행 시간으로 고정 (연장 상한 기준)
    - 종료된 경매는 기록으로 보존 (삭제하지 않음)
    """

    id = fields.BigIntField(pk=True)

    # 아이템 정보 (엔진에서는 해석하지 않음)
    item_name = fields.CharField(max_length=255)
    item_image = fields.CharField(max_length=255, default="🎁")
    item_rarity = fields.CharEnumField(ItemRarity, default=ItemRarity.EPIC)
    item_id = fields.IntField(null=True)

    # 경매 설정
    min_bid = fields.IntField(default=0)
    duration_seconds = fields.IntField()

    created_by = fields.ForeignKeyField(
        "models.User",
        related_name="created_auctions",
        null=True,
        on_delete=fields.SET_NULL
    )

    # 시간
    created_at = fields.DatetimeField()
    original_ends_at = fields.DatetimeField()
    ends_at = fields.DatetimeField()
    ended_at = fields.DatetimeField(null=True)

    # 상태
    status = fields.CharEnumField(AuctionStatus, default=AuctionStatus.ACTIVE)

    # 낙찰 정보
    winner = fields.ForeignKeyField(
        "models.User",
        related_name="won_auctions",
        null=True,
        on_delete=fields.SET_NULL
    )
    winning_bid = fields.IntField(null=True)
    was_tie = fields.BooleanField(default=False)
    winning_roll = fields.IntField(null=True)

    class Meta:
        table = "auctions"
        indexes = (
            ("status", "ends_at"),  # 진행 중 경매 / 재스케줄 조회
            ("status", "ended_at"),  # 경매 기록 조회
        )

    @property
    def is_active(self) -> bool:
        return self.status == AuctionStatus.ACTIVE

    def __str__(self) -> str:
        return f"Auction {self.id}: {self.item_name} ({self.status})"
