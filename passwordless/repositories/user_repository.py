"""Repository for PasswordlessUser operations.

Users are looked up by id or by contact value. Contact updates go through
dedicated methods so uniqueness conflicts surface as typed errors.
"""

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from passwordless.core.errors import (
    DuplicateEmailError,
    DuplicatePhoneNumberError,
    DuplicateUserIdError,
    PasswordlessError,
    UnknownUserIdError,
    ValidationError,
)
from passwordless.models.user import PasswordlessUser
from passwordless.repositories import integrity


def _translate(exc: IntegrityError) -> PasswordlessError | None:
    if integrity.violates(exc, integrity.USER_ID):
        return DuplicateUserIdError()
    if integrity.violates(exc, integrity.USER_EMAIL):
        return DuplicateEmailError()
    if integrity.violates(exc, integrity.USER_PHONE_NUMBER):
        return DuplicatePhoneNumberError()
    if integrity.violates(exc, integrity.USER_CONTACT):
        return ValidationError("A user must keep an email or a phone number")
    return None


class PasswordlessUserRepository:
    """Stateless repository for PasswordlessUser table operations.

    All methods are static; there is no instance state. Pass an AsyncSession
    for every call so the caller controls transaction boundaries.
    """

    @staticmethod
    async def get_by_id(db: AsyncSession, user_id: str) -> PasswordlessUser | None:
        """Fetch a user by primary key.

        Args:
            db: Async database session.
            user_id: User UUID string.

        Returns:
            PasswordlessUser if found, None otherwise.
        """
        return await db.get(PasswordlessUser, user_id)

    @staticmethod
    async def get_by_email(db: AsyncSession, email: str) -> PasswordlessUser | None:
        """Fetch a user by email address (exact match).

        Args:
            db: Async database session.
            email: Email address to look up.

        Returns:
            PasswordlessUser if found, None otherwise.
        """
        stmt = select(PasswordlessUser).where(PasswordlessUser.email == email)
        result = await db.execute(stmt)
        return result.scalar_one_or_none()

    @staticmethod
    async def get_by_phone_number(
        db: AsyncSession, phone_number: str
    ) -> PasswordlessUser | None:
        """Fetch a user by phone number (exact match).

        Args:
            db: Async database session.
            phone_number: Phone number to look up.

        Returns:
            PasswordlessUser if found, None otherwise.
        """
        stmt = select(PasswordlessUser).where(
            PasswordlessUser.phone_number == phone_number
        )
        result = await db.execute(stmt)
        return result.scalar_one_or_none()

    @staticmethod
    async def create(
        db: AsyncSession,
        *,
        user_id: str,
        email: str | None,
        phone_number: str | None,
        time_joined: int,
    ) -> PasswordlessUser:
        """Create a new user.

        Args:
            db: Async database session.
            user_id: Generated user UUID string.
            email: Email address, if any.
            phone_number: Phone number, if any.
            time_joined: Creation time in epoch milliseconds.

        Returns:
            Created PasswordlessUser.

        Raises:
            DuplicateUserIdError: If user_id is taken.
            DuplicateEmailError: If another user owns the email.
            DuplicatePhoneNumberError: If another user owns the phone number.
        """
        user = PasswordlessUser(
            user_id=user_id,
            email=email,
            phone_number=phone_number,
            time_joined=time_joined,
        )
        db.add(user)
        try:
            await db.flush()
        except IntegrityError as exc:
            translated = _translate(exc)
            if translated is None:
                raise
            raise translated from exc
        return user

    @staticmethod
    async def update_email(
        db: AsyncSession, user_id: str, email: str | None
    ) -> PasswordlessUser:
        """Set a user's email (None clears it).

        Args:
            db: Async database session.
            user_id: User to update.
            email: New email value.

        Returns:
            Updated PasswordlessUser.

        Raises:
            UnknownUserIdError: If the user does not exist.
            DuplicateEmailError: If another user owns the email.
            ValidationError: If the user would be left without any contact.
        """
        return await PasswordlessUserRepository._set_field(db, user_id, "email", email)

    @staticmethod
    async def update_phone_number(
        db: AsyncSession, user_id: str, phone_number: str | None
    ) -> PasswordlessUser:
        """Set a user's phone number (None clears it).

        Args:
            db: Async database session.
            user_id: User to update.
            phone_number: New phone number value.

        Returns:
            Updated PasswordlessUser.

        Raises:
            UnknownUserIdError: If the user does not exist.
            DuplicatePhoneNumberError: If another user owns the phone number.
            ValidationError: If the user would be left without any contact.
        """
        return await PasswordlessUserRepository._set_field(
            db, user_id, "phone_number", phone_number
        )

    @staticmethod
    async def _set_field(
        db: AsyncSession, user_id: str, field: str, value: str | None
    ) -> PasswordlessUser:
        user = await db.get(PasswordlessUser, user_id, with_for_update=True)
        if user is None:
            raise UnknownUserIdError(user_id)
        setattr(user, field, value)
        try:
            await db.flush()
        except IntegrityError as exc:
            translated = _translate(exc)
            if translated is None:
                raise
            raise translated from exc
        return user
