"""
DKP 장부 모델

길드원 1인당 1개의 잔액 레코드를 관리합니다.
"""
from tortoise import fields, models


class MemberDKP(models.Model):
    """
    길드원 DKP 잔액

    - current_dkp는 항상 0 이상
    - 입찰은 잔액을 잠그지 않음 (정산 시점에만 차감)
    - 지급은 DKP 상한을 넘지 않음
    """

    id = fields.IntField(pk=True)

    user = fields.OneToOneField(
        "models.User",
        related_name="dkp",
        on_delete=fields.CASCADE
    )

    current_dkp = fields.IntField(default=0)
    lifetime_gained = fields.IntField(default=0)
    lifetime_spent = fields.IntField(default=0)
    updated_at = fields.DatetimeField(auto_now=True)

    class Meta:
        table = "member_dkp"

    def __str__(self) -> str:
        return f"MemberDKP user={self.user_id}: {self.current_dkp}"
