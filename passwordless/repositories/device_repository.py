"""Repository for PasswordlessDevice operations.

Deleting a device always deletes its codes first, so the behaviour does not
depend on the backend enforcing ON DELETE CASCADE.
"""

from sqlalchemy import delete, exists, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from passwordless.core.errors import (
    DuplicateCodeIdError,
    DuplicateDeviceIdHashError,
    DuplicateLinkCodeHashError,
)
from passwordless.models.code import PasswordlessCode
from passwordless.models.device import PasswordlessDevice
from passwordless.repositories import integrity

_NO_SYNC = {"synchronize_session": False}


class DeviceRepository:
    """Stateless repository for PasswordlessDevice table operations.

    All methods are static; there is no instance state. Pass an AsyncSession
    for every call so the caller controls transaction boundaries.
    """

    @staticmethod
    async def create_with_code(
        db: AsyncSession,
        *,
        device_id_hash: str,
        email: str | None,
        phone_number: str | None,
        code_id: str,
        link_code_hash: str,
        created_at: int,
    ) -> PasswordlessDevice:
        """Insert a device together with its first code.

        Args:
            db: Async database session.
            device_id_hash: Hash of the new device id.
            email: Contact email (exclusive with phone_number).
            phone_number: Contact phone number (exclusive with email).
            code_id: UUID of the first code.
            link_code_hash: Hash of the first code's link code.
            created_at: Creation time in epoch milliseconds.

        Returns:
            Created PasswordlessDevice.

        Raises:
            DuplicateDeviceIdHashError: If the device id hash is taken.
            DuplicateCodeIdError: If the code id is taken.
            DuplicateLinkCodeHashError: If the link code hash is taken.
        """
        device = PasswordlessDevice(
            device_id_hash=device_id_hash,
            email=email,
            phone_number=phone_number,
            failed_attempts=0,
        )
        db.add(device)
        db.add(
            PasswordlessCode(
                code_id=code_id,
                device_id_hash=device_id_hash,
                link_code_hash=link_code_hash,
                created_at=created_at,
            )
        )
        try:
            await db.flush()
        except IntegrityError as exc:
            if integrity.violates(exc, integrity.DEVICE_ID_HASH):
                raise DuplicateDeviceIdHashError() from exc
            if integrity.violates(exc, integrity.CODE_ID):
                raise DuplicateCodeIdError() from exc
            if integrity.violates(exc, integrity.LINK_CODE_HASH):
                raise DuplicateLinkCodeHashError() from exc
            raise
        return device

    @staticmethod
    async def get(db: AsyncSession, device_id_hash: str) -> PasswordlessDevice | None:
        """Fetch a device without locking it.

        Args:
            db: Async database session.
            device_id_hash: Device id hash to look up.

        Returns:
            PasswordlessDevice if found, None otherwise.
        """
        stmt = select(PasswordlessDevice).where(
            PasswordlessDevice.device_id_hash == device_id_hash
        )
        result = await db.execute(stmt)
        return result.scalar_one_or_none()

    @staticmethod
    async def get_for_update(
        db: AsyncSession, device_id_hash: str
    ) -> PasswordlessDevice | None:
        """Fetch and lock a device row for the rest of the transaction.

        Must be the first read of a transaction that mutates the device or
        its codes. A plain read here would let two consumers race on the
        attempt counter.

        Args:
            db: Async database session with an open transaction.
            device_id_hash: Device id hash to lock.

        Returns:
            PasswordlessDevice if found, None otherwise.
        """
        stmt = (
            select(PasswordlessDevice)
            .where(PasswordlessDevice.device_id_hash == device_id_hash)
            .with_for_update()
            .execution_options(populate_existing=True)
        )
        result = await db.execute(stmt)
        return result.scalar_one_or_none()

    @staticmethod
    async def increment_failed_attempts(db: AsyncSession, device_id_hash: str) -> None:
        """Add one failed attempt to a device.

        Args:
            db: Async database session.
            device_id_hash: Device to update.
        """
        stmt = (
            update(PasswordlessDevice)
            .where(PasswordlessDevice.device_id_hash == device_id_hash)
            .values(failed_attempts=PasswordlessDevice.failed_attempts + 1)
            .execution_options(**_NO_SYNC)
        )
        await db.execute(stmt)

    @staticmethod
    async def delete(db: AsyncSession, device_id_hash: str) -> None:
        """Delete a device and all of its codes.

        Args:
            db: Async database session.
            device_id_hash: Device to delete.
        """
        await db.execute(
            delete(PasswordlessCode)
            .where(PasswordlessCode.device_id_hash == device_id_hash)
            .execution_options(**_NO_SYNC)
        )
        await db.execute(
            delete(PasswordlessDevice)
            .where(PasswordlessDevice.device_id_hash == device_id_hash)
            .execution_options(**_NO_SYNC)
        )

    @staticmethod
    async def delete_by_email(db: AsyncSession, email: str) -> None:
        """Delete every device (and its codes) bound to an email.

        Args:
            db: Async database session.
            email: Contact email.
        """
        await DeviceRepository._delete_where(db, PasswordlessDevice.email == email)

    @staticmethod
    async def delete_by_phone_number(db: AsyncSession, phone_number: str) -> None:
        """Delete every device (and its codes) bound to a phone number.

        Args:
            db: Async database session.
            phone_number: Contact phone number.
        """
        await DeviceRepository._delete_where(
            db, PasswordlessDevice.phone_number == phone_number
        )

    @staticmethod
    async def delete_without_codes(db: AsyncSession) -> int:
        """Delete devices that no longer own any code.

        Args:
            db: Async database session.

        Returns:
            Number of deleted devices.
        """
        has_code = exists().where(
            PasswordlessCode.device_id_hash == PasswordlessDevice.device_id_hash
        )
        stmt = (
            delete(PasswordlessDevice)
            .where(~has_code)
            .execution_options(**_NO_SYNC)
        )
        result = await db.execute(stmt)
        row_count: int = result.rowcount  # type: ignore[attr-defined]
        return row_count

    @staticmethod
    async def _delete_where(db: AsyncSession, condition) -> None:
        device_hashes = select(PasswordlessDevice.device_id_hash).where(condition)
        await db.execute(
            delete(PasswordlessCode)
            .where(PasswordlessCode.device_id_hash.in_(device_hashes))
            .execution_options(**_NO_SYNC)
        )
        await db.execute(
            delete(PasswordlessDevice).where(condition).execution_options(**_NO_SYNC)
        )
