"""Passwordless device model - anchor of one login attempt.

Identified by the hash of a client-held random device id. Bound to exactly
one contact value for its whole lifetime.
"""

from typing import TYPE_CHECKING

from sqlalchemy import CheckConstraint, Integer, PrimaryKeyConstraint, String, text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from passwordless.models.base import Base

if TYPE_CHECKING:
    from passwordless.models.code import PasswordlessCode


class PasswordlessDevice(Base):
    """Device a login code was issued to.

    Attributes:
        device_id_hash: base64url(SHA-256(device id)). Primary key.
        email: Contact email. Set iff phone_number is NULL.
        phone_number: Contact phone number. Set iff email is NULL.
        failed_attempts: Failed user input code attempts against this device.
    """

    __tablename__ = "passwordless_devices"
    __table_args__ = (
        PrimaryKeyConstraint("device_id_hash", name="pk_passwordless_devices"),
        CheckConstraint(
            "(email IS NULL) <> (phone_number IS NULL)",
            name="ck_passwordless_devices_one_contact",
        ),
        CheckConstraint(
            "failed_attempts >= 0",
            name="ck_passwordless_devices_failed_attempts",
        ),
    )

    device_id_hash: Mapped[str] = mapped_column(String(44))
    email: Mapped[str | None] = mapped_column(
        String(255),
        nullable=True,
        index=True,
    )
    phone_number: Mapped[str | None] = mapped_column(
        String(50),
        nullable=True,
        index=True,
    )
    failed_attempts: Mapped[int] = mapped_column(
        Integer,
        nullable=False,
        default=0,
        server_default=text("0"),
    )

    codes: Mapped[list["PasswordlessCode"]] = relationship(
        "PasswordlessCode",
        back_populates="device",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )
