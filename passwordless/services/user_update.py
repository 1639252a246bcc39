"""User lookup and contact update service.

Changing a user's email or phone number invalidates every in-flight code
for both the vacated and the newly claimed value. The user row is not
locked while reading it; a stale read can at worst clean up devices for
an outdated value, which leaves no inconsistent state.
"""

import logging

from sqlalchemy.ext.asyncio import AsyncSession

from passwordless.core.context import PasswordlessContext
from passwordless.core.database import transaction
from passwordless.core.errors import UnknownUserIdError
from passwordless.repositories.device_repository import DeviceRepository
from passwordless.repositories.user_repository import PasswordlessUserRepository
from passwordless.schemas.passwordless import FieldUpdate, UserInfo

logger = logging.getLogger(__name__)


async def get_user_by_id(ctx: PasswordlessContext, user_id: str) -> UserInfo | None:
    """Fetch a user by id."""
    async with ctx.session_factory() as db:
        user = await PasswordlessUserRepository.get_by_id(db, user_id)
        return UserInfo.from_model(user) if user is not None else None


async def get_user_by_email(ctx: PasswordlessContext, email: str) -> UserInfo | None:
    """Fetch a user by email."""
    async with ctx.session_factory() as db:
        user = await PasswordlessUserRepository.get_by_email(db, email)
        return UserInfo.from_model(user) if user is not None else None


async def get_user_by_phone_number(
    ctx: PasswordlessContext, phone_number: str
) -> UserInfo | None:
    """Fetch a user by phone number."""
    async with ctx.session_factory() as db:
        user = await PasswordlessUserRepository.get_by_phone_number(db, phone_number)
        return UserInfo.from_model(user) if user is not None else None


async def update_user(
    ctx: PasswordlessContext,
    user_id: str,
    *,
    email_update: FieldUpdate | None = None,
    phone_number_update: FieldUpdate | None = None,
) -> None:
    """Change a user's email and/or phone number.

    A None update leaves the field untouched; FieldUpdate(new_value=None)
    clears it. Fields whose new value equals the current one are skipped.
    All changes and device cleanups run in one transaction.

    Args:
        ctx: Passwordless context.
        user_id: User to update.
        email_update: Requested email change, if any.
        phone_number_update: Requested phone number change, if any.

    Raises:
        UnknownUserIdError: If the user does not exist.
        DuplicateEmailError: If another user owns the new email.
        DuplicatePhoneNumberError: If another user owns the new phone number.
        ValidationError: If the update would leave the user without any contact.
    """
    current = await get_user_by_id(ctx, user_id)
    if current is None:
        raise UnknownUserIdError(user_id)

    email_changes = email_update is not None and email_update.new_value != current.email
    phone_changes = (
        phone_number_update is not None
        and phone_number_update.new_value != current.phone_number
    )
    if not email_changes and not phone_changes:
        return

    async with transaction(ctx.session_factory) as db:
        # Set new values before clearing old ones so the row never passes
        # through a state with no contact at all.
        steps: list[tuple[str, str | None, str | None]] = []
        if email_changes:
            steps.append(("email", current.email, email_update.new_value))
        if phone_changes:
            steps.append(
                ("phone_number", current.phone_number, phone_number_update.new_value)
            )
        steps.sort(key=lambda step: step[2] is None)

        for field, old_value, new_value in steps:
            await _apply_field_update(db, user_id, field, old_value, new_value)

    logger.info(
        "Passwordless user contact updated",
        extra={
            "user_id": user_id,
            "email_changed": email_changes,
            "phone_number_changed": phone_changes,
        },
    )


async def _apply_field_update(
    db: AsyncSession,
    user_id: str,
    field: str,
    old_value: str | None,
    new_value: str | None,
) -> None:
    if field == "email":
        await PasswordlessUserRepository.update_email(db, user_id, new_value)
        delete_devices = DeviceRepository.delete_by_email
    else:
        await PasswordlessUserRepository.update_phone_number(db, user_id, new_value)
        delete_devices = DeviceRepository.delete_by_phone_number

    if old_value is not None:
        await delete_devices(db, old_value)
    if new_value is not None:
        await delete_devices(db, new_value)
