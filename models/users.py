from enum import Enum

from tortoise import models, fields


class UserRole(str, Enum):
    MEMBER = "member"
    OFFICER = "officer"
    ADMIN = "admin"


ROLE_RANK = {
    UserRole.MEMBER: 0,
    UserRole.OFFICER: 1,
    UserRole.ADMIN: 2,
}


class User(models.Model):
    id = fields.IntField(pk=True)
    discord_id = fields.BigIntField(unique=True)
    character_name = fields.CharField(max_length=64)
    character_class = fields.CharField(max_length=32, null=True)
    role = fields.CharEnumField(UserRole, default=UserRole.MEMBER)
    is_active = fields.BooleanField(default=True)
    created_at = fields.DatetimeField(auto_now_add=True)

    def get_name(self):
        return self.character_name

    def has_role(self, role: UserRole) -> bool:
        return ROLE_RANK[UserRole(self.role)] >= ROLE_RANK[role]

    class Meta:
        table = "users"

    def __str__(self) -> str:
        return f"User {self.id}: {self.character_name}"
