import enum

from sqlalchemy import Column, DateTime, Enum, Integer, String
from sqlalchemy.sql import func

from fst_auth.db.base import Base


class Role(str, enum.Enum):
    USER = "USER"
    ADMIN = "ADMIN"


class Account(Base):
    """Model for wallet accounts
    Example:
    {
        "id": 1,
        "wallet_address": "9xQeWvG816bUx9EPjHmaT23yvVM2ZWbrrpZb9PusVFin",
        "role": "USER",
        "display_name": null,
        "created_at": "2025-11-01T12:00:00",
        "last_login_at": "2025-11-01T12:00:00"
    }
    """

    __tablename__ = "accounts"

    id = Column(Integer, primary_key=True, autoincrement=True)
    wallet_address = Column(String(64), nullable=False, unique=True, index=True)
    role = Column(Enum(Role, name="role"), nullable=False, default=Role.USER)
    display_name = Column(String(255), nullable=True)
    created_at = Column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )
    last_login_at = Column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )
