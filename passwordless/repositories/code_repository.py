"""Repository for PasswordlessCode operations."""

from sqlalchemy import delete, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from passwordless.core.errors import (
    DuplicateCodeIdError,
    DuplicateLinkCodeHashError,
    UnknownDeviceIdHashError,
)
from passwordless.models.code import PasswordlessCode
from passwordless.models.device import PasswordlessDevice
from passwordless.repositories import integrity


class CodeRepository:
    """Stateless repository for PasswordlessCode table operations.

    All methods are static; there is no instance state.
    """

    @staticmethod
    async def create(
        db: AsyncSession,
        *,
        code_id: str,
        device_id_hash: str,
        link_code_hash: str,
        created_at: int,
    ) -> PasswordlessCode:
        """Add a code to an existing device.

        The device row is locked first so a concurrent consume or cleanup
        cannot delete it between the existence check and the insert.

        Args:
            db: Async database session.
            code_id: UUID of the new code.
            device_id_hash: Owning device.
            link_code_hash: Hash of the code's link code.
            created_at: Creation time in epoch milliseconds.

        Returns:
            Created PasswordlessCode.

        Raises:
            UnknownDeviceIdHashError: If the device does not exist.
            DuplicateCodeIdError: If the code id is taken.
            DuplicateLinkCodeHashError: If the link code hash is taken.
        """
        device_stmt = (
            select(PasswordlessDevice.device_id_hash)
            .where(PasswordlessDevice.device_id_hash == device_id_hash)
            .with_for_update()
        )
        if (await db.execute(device_stmt)).scalar_one_or_none() is None:
            raise UnknownDeviceIdHashError()

        code = PasswordlessCode(
            code_id=code_id,
            device_id_hash=device_id_hash,
            link_code_hash=link_code_hash,
            created_at=created_at,
        )
        db.add(code)
        try:
            await db.flush()
        except IntegrityError as exc:
            if integrity.violates(exc, integrity.CODE_ID):
                raise DuplicateCodeIdError() from exc
            if integrity.violates(exc, integrity.LINK_CODE_HASH):
                raise DuplicateLinkCodeHashError() from exc
            if integrity.violates(exc, integrity.UNKNOWN_DEVICE):
                raise UnknownDeviceIdHashError() from exc
            raise
        return code

    @staticmethod
    async def get(db: AsyncSession, code_id: str) -> PasswordlessCode | None:
        """Fetch a code by id.

        Args:
            db: Async database session.
            code_id: Code UUID.

        Returns:
            PasswordlessCode if found, None otherwise.
        """
        stmt = select(PasswordlessCode).where(PasswordlessCode.code_id == code_id)
        result = await db.execute(stmt)
        return result.scalar_one_or_none()

    @staticmethod
    async def get_by_link_code_hash(
        db: AsyncSession, link_code_hash: str
    ) -> PasswordlessCode | None:
        """Fetch a code by its link code hash.

        Args:
            db: Async database session.
            link_code_hash: base64(SHA-256(link code)).

        Returns:
            PasswordlessCode if found, None otherwise.
        """
        stmt = select(PasswordlessCode).where(
            PasswordlessCode.link_code_hash == link_code_hash
        )
        result = await db.execute(stmt)
        return result.scalar_one_or_none()

    @staticmethod
    async def get_by_link_code_hash_for_update(
        db: AsyncSession, link_code_hash: str
    ) -> PasswordlessCode | None:
        """Fetch and lock a code by its link code hash.

        Args:
            db: Async database session with an open transaction.
            link_code_hash: base64(SHA-256(link code)).

        Returns:
            PasswordlessCode if found, None otherwise.
        """
        stmt = (
            select(PasswordlessCode)
            .where(PasswordlessCode.link_code_hash == link_code_hash)
            .with_for_update()
        )
        result = await db.execute(stmt)
        return result.scalar_one_or_none()

    @staticmethod
    async def list_for_device(
        db: AsyncSession, device_id_hash: str
    ) -> list[PasswordlessCode]:
        """List all codes of a device.

        Args:
            db: Async database session.
            device_id_hash: Owning device.

        Returns:
            Codes ordered by creation time.
        """
        stmt = (
            select(PasswordlessCode)
            .where(PasswordlessCode.device_id_hash == device_id_hash)
            .order_by(PasswordlessCode.created_at, PasswordlessCode.code_id)
            .with_for_update()
        )
        result = await db.execute(stmt)
        return list(result.scalars().all())

    @staticmethod
    async def delete(db: AsyncSession, code_id: str) -> None:
        """Delete a single code.

        Args:
            db: Async database session.
            code_id: Code UUID.
        """
        stmt = (
            delete(PasswordlessCode)
            .where(PasswordlessCode.code_id == code_id)
            .execution_options(synchronize_session=False)
        )
        await db.execute(stmt)

    @staticmethod
    async def delete_expired(db: AsyncSession, *, created_before: int) -> int:
        """Delete every code created before a cutoff.

        Args:
            db: Async database session.
            created_before: Cutoff in epoch milliseconds (exclusive).

        Returns:
            Number of deleted rows.
        """
        stmt = (
            delete(PasswordlessCode)
            .where(PasswordlessCode.created_at < created_before)
            .execution_options(synchronize_session=False)
        )
        result = await db.execute(stmt)
        row_count: int = result.rowcount  # type: ignore[attr-defined]
        return row_count
