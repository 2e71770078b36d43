"""
입찰 모델

경매당 사용자별 1건의 유효 입찰만 유지합니다.
"""
from tortoise import fields, models


class AuctionBid(models.Model):
    """
    입찰

    - (auction, user) 유니크: 재입찰은 기존 행 삭제 후 새로 추가
    - 입찰 시 DKP를 차감하지 않음 (정산 시 낙찰자만 차감)
    """

    id = fields.BigIntField(pk=True)

    auction = fields.ForeignKeyField(
        "models.Auction",
        related_name="bids",
        on_delete=fields.CASCADE
    )

    user = fields.ForeignKeyField(
        "models.User",
        related_name="auction_bids",
        on_delete=fields.CASCADE
    )

    amount = fields.IntField()
    created_at = fields.DatetimeField(auto_now_add=True)

    class Meta:
        table = "auction_bids"
        unique_together = (("auction", "user"),)
        indexes = (
            ("auction", "amount"),  # 최고 입찰가 조회
        )

    def __str__(self) -> str:
        return f"Bid {self.id}: {self.amount} DKP on Auction {self.auction_id}"
