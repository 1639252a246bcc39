"""Tests for CodeRepository.

Covers adding codes to devices, collision translation, lookups,
per-device listing, deletion and the expiry sweep.
"""

import pytest
from sqlalchemy.ext.asyncio import AsyncSession

from passwordless.core.errors import (
    DuplicateCodeIdError,
    DuplicateLinkCodeHashError,
    UnknownDeviceIdHashError,
)
from passwordless.repositories.code_repository import CodeRepository
from passwordless.repositories.device_repository import DeviceRepository

_DEVICE = "dev-1"


@pytest.fixture
async def device(db_session: AsyncSession):
    """Device dev-1 with first code code-1 created at t=1000."""
    return await DeviceRepository.create_with_code(
        db_session,
        device_id_hash=_DEVICE,
        email="a@example.com",
        phone_number=None,
        code_id="code-1",
        link_code_hash="link-1",
        created_at=1_000,
    )


class TestCreate:
    """Test CodeRepository.create()."""

    async def test_adds_code_to_existing_device(self, db_session: AsyncSession, device):
        """Second code is attached to the device."""
        code = await CodeRepository.create(
            db_session,
            code_id="code-2",
            device_id_hash=device.device_id_hash,
            link_code_hash="link-2",
            created_at=2_000,
        )
        assert code.device_id_hash == _DEVICE
        codes = await CodeRepository.list_for_device(db_session, _DEVICE)
        assert [c.code_id for c in codes] == ["code-1", "code-2"]

    async def test_unknown_device(self, db_session: AsyncSession):
        """Missing device raises UnknownDeviceIdHashError."""
        with pytest.raises(UnknownDeviceIdHashError):
            await CodeRepository.create(
                db_session,
                code_id="code-9",
                device_id_hash="missing",
                link_code_hash="link-9",
                created_at=1_000,
            )

    async def test_duplicate_link_code_hash(self, db_session: AsyncSession, device):
        """Reusing a link code hash raises DuplicateLinkCodeHashError."""
        with pytest.raises(DuplicateLinkCodeHashError):
            await CodeRepository.create(
                db_session,
                code_id="code-2",
                device_id_hash=device.device_id_hash,
                link_code_hash="link-1",
                created_at=2_000,
            )

    async def test_duplicate_code_id(self, session_factory):
        """Reusing a code id raises DuplicateCodeIdError."""
        async with session_factory() as db:
            await DeviceRepository.create_with_code(
                db,
                device_id_hash=_DEVICE,
                email="a@example.com",
                phone_number=None,
                code_id="code-1",
                link_code_hash="link-1",
                created_at=1_000,
            )
            await db.commit()
        async with session_factory() as db:
            with pytest.raises(DuplicateCodeIdError):
                await CodeRepository.create(
                    db,
                    code_id="code-1",
                    device_id_hash=_DEVICE,
                    link_code_hash="link-2",
                    created_at=2_000,
                )


class TestLookups:
    """Test get(), get_by_link_code_hash() and the locking variant."""

    async def test_get_by_id(self, db_session: AsyncSession, device):  # noqa: ARG002
        """Existing code is returned by id."""
        code = await CodeRepository.get(db_session, "code-1")
        assert code is not None
        assert code.link_code_hash == "link-1"

    async def test_get_missing_returns_none(self, db_session: AsyncSession):
        """Unknown id returns None."""
        assert await CodeRepository.get(db_session, "nope") is None

    async def test_get_by_link_code_hash(
        self, db_session: AsyncSession, device  # noqa: ARG002
    ):
        """Code is found by its link code hash."""
        code = await CodeRepository.get_by_link_code_hash(db_session, "link-1")
        assert code is not None
        assert code.code_id == "code-1"

    async def test_get_by_link_code_hash_for_update(
        self, db_session: AsyncSession, device  # noqa: ARG002
    ):
        """Locking variant returns the same row."""
        code = await CodeRepository.get_by_link_code_hash_for_update(
            db_session, "link-1"
        )
        assert code is not None
        assert code.created_at == 1_000

    async def test_list_for_unknown_device_is_empty(self, db_session: AsyncSession):
        """No codes for a missing device."""
        assert await CodeRepository.list_for_device(db_session, "missing") == []


class TestDelete:
    """Test delete() and delete_expired()."""

    async def test_delete_single_code(self, db_session: AsyncSession, device):
        """Only the given code is removed."""
        await CodeRepository.create(
            db_session,
            code_id="code-2",
            device_id_hash=device.device_id_hash,
            link_code_hash="link-2",
            created_at=2_000,
        )
        await CodeRepository.delete(db_session, "code-1")
        codes = await CodeRepository.list_for_device(db_session, _DEVICE)
        assert [c.code_id for c in codes] == ["code-2"]

    async def test_delete_expired_uses_strict_cutoff(
        self, db_session: AsyncSession, device
    ):
        """Codes created before the cutoff are deleted; at the cutoff kept."""
        await CodeRepository.create(
            db_session,
            code_id="code-2",
            device_id_hash=device.device_id_hash,
            link_code_hash="link-2",
            created_at=2_000,
        )
        deleted = await CodeRepository.delete_expired(db_session, created_before=2_000)
        assert deleted == 1
        codes = await CodeRepository.list_for_device(db_session, _DEVICE)
        assert [c.code_id for c in codes] == ["code-2"]
