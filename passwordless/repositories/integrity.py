"""Mapping of database constraint violations to typed storage errors.

PostgreSQL reports the violated constraint by name; SQLite reports the
table.column pair. Each constraint is matched on both forms.
"""

from sqlalchemy.exc import IntegrityError

LINK_CODE_HASH = (
    "uq_passwordless_codes_link_code_hash",
    "passwordless_codes.link_code_hash",
)
CODE_ID = ("pk_passwordless_codes", "passwordless_codes.code_id")
DEVICE_ID_HASH = ("pk_passwordless_devices", "passwordless_devices.device_id_hash")
UNKNOWN_DEVICE = ("fk_passwordless_codes_device_id_hash", "foreign key constraint")
USER_ID = ("pk_passwordless_users", "passwordless_users.user_id")
USER_EMAIL = ("uq_passwordless_users_email", "passwordless_users.email")
USER_PHONE_NUMBER = (
    "uq_passwordless_users_phone_number",
    "passwordless_users.phone_number",
)
USER_CONTACT = ("ck_passwordless_users_contact",)


def violates(exc: IntegrityError, markers: tuple[str, ...]) -> bool:
    """Check whether an IntegrityError was caused by the given constraint.

    Args:
        exc: The IntegrityError from SQLAlchemy.
        markers: Constraint name and/or table.column identifying it.

    Returns:
        True if any marker appears in the driver error message.
    """
    error_msg = (str(exc.orig) if exc.orig else str(exc)).lower()
    return any(marker in error_msg for marker in markers)
