"""Code consumption service - the login state machine.

Two entry modes:
- link code: the code is looked up by its link code hash before the
  transaction; a missing or expired link restarts the flow without
  counting an attempt.
- device id + user input code: the link code hash is rebuilt from the
  pair, so a wrong code simply finds no row and counts as a failed attempt.

Inside one transaction the device row is locked first, which serializes
concurrent attempts against the same device:

1. missing device -> RestartFlowError
2. attempts already at max -> delete device, RestartFlowError
3. code missing or expired:
   - link mode -> RestartFlowError (no penalty)
   - typed mode -> increment attempts, or delete the device if that would
     reach max; raise Incorrect/ExpiredUserInputCodeError or RestartFlowError
4. valid -> delete every device sharing the contact value, commit

After the transaction the user for the contact value is fetched or created.
"""

import uuid

import structlog

from passwordless.core import crypto
from passwordless.core.context import PasswordlessContext
from passwordless.core.database import transaction
from passwordless.core.errors import (
    DuplicateEmailError,
    DuplicatePhoneNumberError,
    DuplicateUserIdError,
    ExpiredUserInputCodeError,
    IncorrectUserInputCodeError,
    RestartFlowError,
    ValidationError,
)
from passwordless.repositories.code_repository import CodeRepository
from passwordless.repositories.device_repository import DeviceRepository
from passwordless.repositories.user_repository import PasswordlessUserRepository
from passwordless.schemas.passwordless import ConsumeCodeResponse, UserInfo
from passwordless.services.code_cleanup import (
    remove_codes_by_email,
    remove_codes_by_phone_number,
)

logger = structlog.get_logger()


async def consume_code(
    ctx: PasswordlessContext,
    *,
    device_id: str | None = None,
    user_input_code: str | None = None,
    link_code: str | None = None,
) -> ConsumeCodeResponse:
    """Consume a login code and sign the user in.

    Args:
        ctx: Passwordless context.
        device_id: Standard base64 device id (typed-code mode).
        user_input_code: Code typed by the user (typed-code mode).
        link_code: base64url link code (link mode).

    Returns:
        ConsumeCodeResponse with the user and whether it was just created.

    Raises:
        ValidationError: If the entry mode is ambiguous or inputs are malformed.
        RestartFlowError: If the device/link is gone, expired without penalty,
            out of attempts, or the user could not be created consistently.
        IncorrectUserInputCodeError: Typed code did not match; attempt counted.
        ExpiredUserInputCodeError: Typed code matched but expired; attempt counted.
    """
    typed_mode = device_id is not None or user_input_code is not None
    if link_code is not None and typed_mode:
        raise ValidationError("Use either link_code or device_id with user_input_code")
    if link_code is None and (device_id is None or user_input_code is None):
        raise ValidationError("device_id and user_input_code are both required")

    if link_code is not None:
        link_code_hash = crypto.hash_link_code(crypto.decode_link_code(link_code))
        async with ctx.session_factory() as db:
            code = await CodeRepository.get_by_link_code_hash(db, link_code_hash)
        if code is None or ctx.is_expired(code.created_at):
            raise RestartFlowError()
        device_id_hash = code.device_id_hash
    else:
        device_id_bytes = crypto.decode_device_id(device_id)
        device_id_hash = crypto.hash_device_id(device_id_bytes)
        link_code_hash = crypto.link_code_hash_for(device_id_bytes, user_input_code)

    email, phone_number = await _consume_in_transaction(
        ctx,
        device_id_hash=device_id_hash,
        link_code_hash=link_code_hash,
        typed_mode=typed_mode,
    )
    return await _resolve_user(ctx, email, phone_number)


async def _consume_in_transaction(
    ctx: PasswordlessContext,
    *,
    device_id_hash: str,
    link_code_hash: str,
    typed_mode: bool,
) -> tuple[str | None, str | None]:
    """Validate the code under the device lock.

    Returns:
        (email, phone_number) of the consumed device.
    """
    max_attempts = ctx.max_code_input_attempts
    async with transaction(ctx.session_factory) as db:
        device = await DeviceRepository.get_for_update(db, device_id_hash)
        if device is None:
            raise RestartFlowError()

        if device.failed_attempts >= max_attempts:
            await DeviceRepository.delete(db, device_id_hash)
            await db.commit()
            raise RestartFlowError()

        code = await CodeRepository.get_by_link_code_hash_for_update(db, link_code_hash)
        if code is None or ctx.is_expired(code.created_at):
            if not typed_mode:
                raise RestartFlowError()

            failed_attempts = device.failed_attempts + 1
            if failed_attempts >= max_attempts:
                await DeviceRepository.delete(db, device_id_hash)
                await db.commit()
                logger.warning(
                    "passwordless_attempts_exhausted",
                    device_id_hash=device_id_hash,
                    max_attempts=max_attempts,
                )
                raise RestartFlowError()

            await DeviceRepository.increment_failed_attempts(db, device_id_hash)
            await db.commit()
            if code is not None:
                raise ExpiredUserInputCodeError(failed_attempts, max_attempts)
            raise IncorrectUserInputCodeError(failed_attempts, max_attempts)

        email, phone_number = device.email, device.phone_number
        if email is not None:
            await DeviceRepository.delete_by_email(db, email)
        elif phone_number is not None:
            await DeviceRepository.delete_by_phone_number(db, phone_number)

    logger.info("passwordless_code_consumed", device_id_hash=device_id_hash)
    return email, phone_number


async def _resolve_user(
    ctx: PasswordlessContext,
    email: str | None,
    phone_number: str | None,
) -> ConsumeCodeResponse:
    async with ctx.session_factory() as db:
        if email is not None:
            user = await PasswordlessUserRepository.get_by_email(db, email)
        else:
            user = await PasswordlessUserRepository.get_by_phone_number(
                db, phone_number
            )
        existing = UserInfo.from_model(user) if user is not None else None

    if existing is None:
        return ConsumeCodeResponse(
            created_new_user=True,
            user=await _create_user(ctx, email, phone_number),
        )

    # The device's own contact value was cleaned inside the transaction.
    # Devices for the user's other contact value are cleaned here.
    if existing.email is not None and existing.email != email:
        await remove_codes_by_email(ctx, existing.email)
    if existing.phone_number is not None and existing.phone_number != phone_number:
        await remove_codes_by_phone_number(ctx, existing.phone_number)

    return ConsumeCodeResponse(created_new_user=False, user=existing)


async def _create_user(
    ctx: PasswordlessContext,
    email: str | None,
    phone_number: str | None,
) -> UserInfo:
    while True:
        user_id = str(uuid.uuid4())
        try:
            async with transaction(ctx.session_factory) as db:
                user = await PasswordlessUserRepository.create(
                    db,
                    user_id=user_id,
                    email=email,
                    phone_number=phone_number,
                    time_joined=ctx.now_ms(),
                )
                info = UserInfo.from_model(user)
        except DuplicateUserIdError:
            logger.debug("passwordless_create_user_retry", reason="DUPLICATE_USER_ID")
            continue
        except (DuplicateEmailError, DuplicatePhoneNumberError) as exc:
            # Another flow created this user, or a contact update claimed the
            # value, between the lookup and the insert.
            logger.warning("passwordless_create_user_conflict", reason=exc.code)
            raise RestartFlowError() from exc

        logger.info("passwordless_user_created", user_id=info.user_id)
        return info
