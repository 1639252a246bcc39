"""Passwordless user model.

Created lazily the first time a code for a new contact value is consumed.
Never deleted by the login flow.
"""

from sqlalchemy import (
    BigInteger,
    CheckConstraint,
    PrimaryKeyConstraint,
    String,
    UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column

from passwordless.models.base import Base


class PasswordlessUser(Base):
    """User signed in through a passwordless code.

    Attributes:
        user_id: UUID string. Primary key.
        email: Unique email address, if any.
        phone_number: Unique phone number, if any.
        time_joined: Creation time in epoch milliseconds.
    """

    __tablename__ = "passwordless_users"
    __table_args__ = (
        PrimaryKeyConstraint("user_id", name="pk_passwordless_users"),
        UniqueConstraint("email", name="uq_passwordless_users_email"),
        UniqueConstraint("phone_number", name="uq_passwordless_users_phone_number"),
        CheckConstraint(
            "email IS NOT NULL OR phone_number IS NOT NULL",
            name="ck_passwordless_users_contact",
        ),
    )

    user_id: Mapped[str] = mapped_column(String(36))
    email: Mapped[str | None] = mapped_column(
        String(255),
        nullable=True,
    )
    phone_number: Mapped[str | None] = mapped_column(
        String(50),
        nullable=True,
    )
    time_joined: Mapped[int] = mapped_column(
        BigInteger,
        nullable=False,
    )
