"""Passwordless code model - one issued login code.

Codes are never updated. Expiry is enforced at read time from created_at;
expired rows stay until consumed, removed, or swept by remove_expired_codes.
"""

from typing import TYPE_CHECKING

from sqlalchemy import (
    BigInteger,
    ForeignKey,
    PrimaryKeyConstraint,
    String,
    UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from passwordless.models.base import Base

if TYPE_CHECKING:
    from passwordless.models.device import PasswordlessDevice


class PasswordlessCode(Base):
    """Login code bound to a device.

    Attributes:
        code_id: UUID string. Primary key.
        device_id_hash: Owning device.
        link_code_hash: base64(SHA-256(link code)). Globally unique lookup key.
        created_at: Creation time in epoch milliseconds.
    """

    __tablename__ = "passwordless_codes"
    __table_args__ = (
        PrimaryKeyConstraint("code_id", name="pk_passwordless_codes"),
        UniqueConstraint("link_code_hash", name="uq_passwordless_codes_link_code_hash"),
    )

    code_id: Mapped[str] = mapped_column(String(36))
    device_id_hash: Mapped[str] = mapped_column(
        String(44),
        ForeignKey(
            "passwordless_devices.device_id_hash",
            ondelete="CASCADE",
            name="fk_passwordless_codes_device_id_hash",
        ),
        nullable=False,
        index=True,
    )
    link_code_hash: Mapped[str] = mapped_column(
        String(44),
        nullable=False,
    )
    created_at: Mapped[int] = mapped_column(
        BigInteger,
        nullable=False,
        index=True,
    )

    device: Mapped["PasswordlessDevice"] = relationship(
        "PasswordlessDevice",
        back_populates="codes",
    )
