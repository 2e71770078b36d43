"""
DKP 거래 내역 모델

추가만 가능한 감사 로그입니다. 수정/삭제하지 않습니다.
"""
from tortoise import fields, models


class DKPTransaction(models.Model):
    """DKP 증감 기록 (amount는 부호 있는 변화량)"""

    id = fields.BigIntField(pk=True)

    user = fields.ForeignKeyField(
        "models.User",
        related_name="dkp_transactions",
        on_delete=fields.CASCADE
    )

    amount = fields.IntField()
    reason = fields.CharField(max_length=255, null=True)

    performed_by = fields.ForeignKeyField(
        "models.User",
        related_name="performed_dkp_transactions",
        null=True,
        on_delete=fields.SET_NULL
    )

    # 경매 낙찰 차감일 때만 설정
    auction = fields.ForeignKeyField(
        "models.Auction",
        related_name="dkp_transactions",
        null=True,
        on_delete=fields.SET_NULL
    )

    created_at = fields.DatetimeField(auto_now_add=True)

    class Meta:
        table = "dkp_transactions"
        indexes = (
            ("user", "created_at"),  # 내 거래 내역 조회
        )

    def __str__(self) -> str:
        return f"DKPTransaction {self.id}: {self.amount:+d} user={self.user_id}"
