"""Code issuance service.

Creates a device with its first code, or adds a code to an existing device.
Every value that can collide (device id, code id, link code) comes from
random material, so collisions are retried with fresh values. The one
exception is a caller that pins both the device id and the user input code:
the link code is then deterministic and a collision is permanent.

Each attempt is its own transaction; the retry loop, not a lock, is what
makes issuance safe against concurrent inserts.
"""

import uuid
from dataclasses import dataclass

import structlog

from passwordless.core import crypto
from passwordless.core.context import PasswordlessContext
from passwordless.core.database import transaction
from passwordless.core.errors import (
    DuplicateCodeIdError,
    DuplicateDeviceIdHashError,
    DuplicateLinkCodeHashError,
    RestartFlowError,
    UnknownDeviceIdHashError,
    ValidationError,
)
from passwordless.repositories.code_repository import CodeRepository
from passwordless.repositories.device_repository import DeviceRepository
from passwordless.schemas.passwordless import CreateCodeResponse

logger = structlog.get_logger()


@dataclass(frozen=True)
class _CodeInfo:
    """Everything derived for one issuance attempt."""

    code_id: str
    device_id: str
    device_id_hash: str
    user_input_code: str
    link_code: str
    link_code_hash: str
    created_at: int

    def to_response(self) -> CreateCodeResponse:
        return CreateCodeResponse(
            device_id_hash=self.device_id_hash,
            code_id=self.code_id,
            device_id=self.device_id,
            user_input_code=self.user_input_code,
            link_code=self.link_code,
            time_created=self.created_at,
        )


def _generate_code_info(
    device_id_bytes: bytes,
    user_input_code: str | None,
    created_at: int,
) -> _CodeInfo:
    """Derive ids, codes and hashes for one attempt."""
    if user_input_code is None:
        user_input_code = crypto.generate_user_input_code()
    link_code_bytes = crypto.compute_link_code(device_id_bytes, user_input_code)
    return _CodeInfo(
        code_id=str(uuid.uuid4()),
        device_id=crypto.encode_device_id(device_id_bytes),
        device_id_hash=crypto.hash_device_id(device_id_bytes),
        user_input_code=user_input_code,
        link_code=crypto.encode_link_code(link_code_bytes),
        link_code_hash=crypto.hash_link_code(link_code_bytes),
        created_at=created_at,
    )


async def create_code(
    ctx: PasswordlessContext,
    *,
    email: str | None = None,
    phone_number: str | None = None,
    device_id: str | None = None,
    user_input_code: str | None = None,
) -> CreateCodeResponse:
    """Issue a login code.

    Without device_id a new device is created for the given contact value.
    With device_id the code is added to that device, whose contact value is
    already fixed (email/phone_number are then ignored).

    Args:
        ctx: Passwordless context.
        email: Contact email for a new device (exclusive with phone_number).
        phone_number: Contact phone for a new device (exclusive with email).
        device_id: Standard base64 device id of an existing device.
        user_input_code: Caller-chosen code. Generated when omitted.

    Returns:
        CreateCodeResponse with the device id, both code forms and ids.

    Raises:
        ValidationError: If the contact or code arguments are malformed.
        RestartFlowError: If device_id refers to a device that no longer exists.
        DuplicateLinkCodeHashError: If device_id and user_input_code were both
            pinned and that code already exists.
    """
    if user_input_code is not None and not user_input_code:
        raise ValidationError("user_input_code must not be empty")

    if device_id is None:
        if (email is None) == (phone_number is None):
            raise ValidationError("Exactly one of email or phone_number is required")
        return await _create_device_with_code(ctx, email, phone_number, user_input_code)

    device_id_bytes = crypto.decode_device_id(device_id)
    return await _add_code_to_device(ctx, device_id_bytes, user_input_code)


async def _create_device_with_code(
    ctx: PasswordlessContext,
    email: str | None,
    phone_number: str | None,
    user_input_code: str | None,
) -> CreateCodeResponse:
    while True:
        info = _generate_code_info(
            crypto.generate_device_id_bytes(), user_input_code, ctx.now_ms()
        )
        try:
            async with transaction(ctx.session_factory) as db:
                await DeviceRepository.create_with_code(
                    db,
                    device_id_hash=info.device_id_hash,
                    email=email,
                    phone_number=phone_number,
                    code_id=info.code_id,
                    link_code_hash=info.link_code_hash,
                    created_at=info.created_at,
                )
        except (
            DuplicateLinkCodeHashError,
            DuplicateCodeIdError,
            DuplicateDeviceIdHashError,
        ) as exc:
            # The device id is regenerated each round, so even a pinned
            # user input code yields a new link code.
            logger.debug("passwordless_create_device_retry", reason=exc.code)
            continue

        logger.debug(
            "passwordless_device_created",
            device_id_hash=info.device_id_hash,
            code_id=info.code_id,
        )
        return info.to_response()


async def _add_code_to_device(
    ctx: PasswordlessContext,
    device_id_bytes: bytes,
    user_input_code: str | None,
) -> CreateCodeResponse:
    while True:
        info = _generate_code_info(device_id_bytes, user_input_code, ctx.now_ms())
        try:
            async with transaction(ctx.session_factory) as db:
                await CodeRepository.create(
                    db,
                    code_id=info.code_id,
                    device_id_hash=info.device_id_hash,
                    link_code_hash=info.link_code_hash,
                    created_at=info.created_at,
                )
        except DuplicateLinkCodeHashError as exc:
            if user_input_code is not None:
                raise
            logger.debug("passwordless_create_code_retry", reason=exc.code)
            continue
        except UnknownDeviceIdHashError as exc:
            raise RestartFlowError() from exc
        except DuplicateCodeIdError as exc:
            logger.debug("passwordless_create_code_retry", reason=exc.code)
            continue

        logger.debug(
            "passwordless_code_created",
            device_id_hash=info.device_id_hash,
            code_id=info.code_id,
        )
        return info.to_response()
