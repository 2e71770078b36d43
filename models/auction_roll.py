"""
동점 주사위 기록 모델

최고 유효 입찰이 동점일 때 굴린 주사위를 감사용으로 남깁니다.
"""
from tortoise import fields, models


class AuctionRoll(models.Model):
    """
    동점 주사위 결과

    - roll_result: 첫 주사위 (낙찰자가 항상 최댓값)
    - rerolls: 최고 주사위까지 동점이었을 때의 재굴림 값들
    """

    id = fields.BigIntField(pk=True)

    auction = fields.ForeignKeyField(
        "models.Auction",
        related_name="rolls",
        on_delete=fields.CASCADE
    )

    user = fields.ForeignKeyField(
        "models.User",
        related_name="auction_rolls",
        on_delete=fields.CASCADE
    )

    bid_amount = fields.IntField()
    roll_result = fields.IntField()
    rerolls = fields.JSONField(default=list)
    is_winner = fields.BooleanField(default=False)
    created_at = fields.DatetimeField(auto_now_add=True)

    class Meta:
        table = "auction_rolls"

    def __str__(self) -> str:
        return f"Roll {self.roll_result} by user {self.user_id} on Auction {self.auction_id}"
