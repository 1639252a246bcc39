"""Create passwordless tables: devices, codes, users.

Revision ID: 001_passwordless_tables
Revises:
Create Date: 2026-10-18

- passwordless_devices: login attempt anchor, one contact value each.
- passwordless_codes: issued codes, FK to devices (ON DELETE CASCADE).
- passwordless_users: users created by a successful consumption.

Timestamps are BIGINT epoch milliseconds. No server-side UUID defaults,
ids are generated by the application so the retry loops can see collisions.
"""

from collections.abc import Sequence

import sqlalchemy as sa
from alembic import op

revision: str = "001_passwordless_tables"
down_revision: str | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None


def upgrade() -> None:
    # =========================================================================
    # Devices
    # =========================================================================
    op.create_table(
        "passwordless_devices",
        sa.Column("device_id_hash", sa.String(44), nullable=False),
        sa.Column("email", sa.String(255), nullable=True),
        sa.Column("phone_number", sa.String(50), nullable=True),
        sa.Column(
            "failed_attempts",
            sa.Integer(),
            server_default=sa.text("0"),
            nullable=False,
        ),
        sa.PrimaryKeyConstraint("device_id_hash", name="pk_passwordless_devices"),
        sa.CheckConstraint(
            "(email IS NULL) <> (phone_number IS NULL)",
            name="ck_passwordless_devices_one_contact",
        ),
        sa.CheckConstraint(
            "failed_attempts >= 0",
            name="ck_passwordless_devices_failed_attempts",
        ),
    )
    op.create_index(
        "ix_passwordless_devices_email", "passwordless_devices", ["email"]
    )
    op.create_index(
        "ix_passwordless_devices_phone_number",
        "passwordless_devices",
        ["phone_number"],
    )

    # =========================================================================
    # Codes
    # =========================================================================
    op.create_table(
        "passwordless_codes",
        sa.Column("code_id", sa.String(36), nullable=False),
        sa.Column("device_id_hash", sa.String(44), nullable=False),
        sa.Column("link_code_hash", sa.String(44), nullable=False),
        sa.Column("created_at", sa.BigInteger(), nullable=False),
        sa.PrimaryKeyConstraint("code_id", name="pk_passwordless_codes"),
        sa.UniqueConstraint(
            "link_code_hash", name="uq_passwordless_codes_link_code_hash"
        ),
        sa.ForeignKeyConstraint(
            ["device_id_hash"],
            ["passwordless_devices.device_id_hash"],
            ondelete="CASCADE",
            name="fk_passwordless_codes_device_id_hash",
        ),
    )
    op.create_index(
        "ix_passwordless_codes_device_id_hash",
        "passwordless_codes",
        ["device_id_hash"],
    )
    op.create_index(
        "ix_passwordless_codes_created_at", "passwordless_codes", ["created_at"]
    )

    # =========================================================================
    # Users
    # =========================================================================
    op.create_table(
        "passwordless_users",
        sa.Column("user_id", sa.String(36), nullable=False),
        sa.Column("email", sa.String(255), nullable=True),
        sa.Column("phone_number", sa.String(50), nullable=True),
        sa.Column("time_joined", sa.BigInteger(), nullable=False),
        sa.PrimaryKeyConstraint("user_id", name="pk_passwordless_users"),
        sa.UniqueConstraint("email", name="uq_passwordless_users_email"),
        sa.UniqueConstraint(
            "phone_number", name="uq_passwordless_users_phone_number"
        ),
        sa.CheckConstraint(
            "email IS NOT NULL OR phone_number IS NOT NULL",
            name="ck_passwordless_users_contact",
        ),
    )


def downgrade() -> None:
    # Reverse order of creation
    op.drop_table("passwordless_users")

    op.drop_index("ix_passwordless_codes_created_at", table_name="passwordless_codes")
    op.drop_index(
        "ix_passwordless_codes_device_id_hash", table_name="passwordless_codes"
    )
    op.drop_table("passwordless_codes")

    op.drop_index(
        "ix_passwordless_devices_phone_number", table_name="passwordless_devices"
    )
    op.drop_index("ix_passwordless_devices_email", table_name="passwordless_devices")
    op.drop_table("passwordless_devices")
