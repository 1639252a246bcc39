"""Code and device cleanup service.

Removes codes by id, and devices (with all their codes) by contact value.
Also provides the periodic sweep of expired codes; expiry itself is always
enforced at read time, so the sweep only reclaims storage.
"""

import logging

from passwordless.core.context import PasswordlessContext
from passwordless.core.database import transaction
from passwordless.repositories.code_repository import CodeRepository
from passwordless.repositories.device_repository import DeviceRepository

logger = logging.getLogger(__name__)


async def remove_code(ctx: PasswordlessContext, code_id: str) -> None:
    """Remove a single code, and its device if it was the last code.

    Unknown or already removed codes are a no-op.

    Args:
        ctx: Passwordless context.
        code_id: Code UUID.
    """
    async with ctx.session_factory() as db:
        code = await CodeRepository.get(db, code_id)
        device_id_hash = code.device_id_hash if code is not None else None
    if device_id_hash is None:
        return

    async with transaction(ctx.session_factory) as db:
        # Lock the device before reading its codes
        await DeviceRepository.get_for_update(db, device_id_hash)
        codes = await CodeRepository.list_for_device(db, device_id_hash)
        if not any(c.code_id == code_id for c in codes):
            return

        if len(codes) == 1:
            await DeviceRepository.delete(db, device_id_hash)
        else:
            await CodeRepository.delete(db, code_id)

    logger.info(
        "Removed passwordless code",
        extra={"code_id": code_id, "device_removed": len(codes) == 1},
    )


async def remove_codes_by_email(ctx: PasswordlessContext, email: str) -> None:
    """Remove every device and code issued for an email.

    Args:
        ctx: Passwordless context.
        email: Contact email.
    """
    async with transaction(ctx.session_factory) as db:
        await DeviceRepository.delete_by_email(db, email)


async def remove_codes_by_phone_number(
    ctx: PasswordlessContext, phone_number: str
) -> None:
    """Remove every device and code issued for a phone number.

    Args:
        ctx: Passwordless context.
        phone_number: Contact phone number.
    """
    async with transaction(ctx.session_factory) as db:
        await DeviceRepository.delete_by_phone_number(db, phone_number)


async def remove_expired_codes(ctx: PasswordlessContext) -> int:
    """Delete expired codes and the devices they leave empty.

    Args:
        ctx: Passwordless context.

    Returns:
        Number of deleted codes.
    """
    cutoff = ctx.now_ms() - ctx.code_lifetime_ms
    async with transaction(ctx.session_factory) as db:
        deleted_codes = await CodeRepository.delete_expired(db, created_before=cutoff)
        deleted_devices = await DeviceRepository.delete_without_codes(db)

    logger.info(
        "Expired passwordless codes removed",
        extra={"deleted_codes": deleted_codes, "deleted_devices": deleted_devices},
    )
    return deleted_codes
