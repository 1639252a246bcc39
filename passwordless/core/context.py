"""Explicit context passed into every passwordless operation.

Bundles the storage handle with the login rules so services never reach
for module-level globals.
"""

import time
from collections.abc import Callable
from dataclasses import dataclass, field

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from passwordless.core.config import Settings


def current_time_ms() -> int:
    """Wall-clock time in milliseconds since the Unix epoch."""
    return time.time_ns() // 1_000_000


@dataclass(frozen=True)
class PasswordlessContext:
    """Storage handle and login rules for one deployment.

    Attributes:
        session_factory: Produces AsyncSession instances, one per transaction.
        code_lifetime_ms: How long an issued code stays usable.
        max_code_input_attempts: Failed attempts after which a device is destroyed.
        now_ms: Clock returning epoch milliseconds (injectable for tests).
    """

    session_factory: async_sessionmaker[AsyncSession]
    code_lifetime_ms: int
    max_code_input_attempts: int
    now_ms: Callable[[], int] = field(default=current_time_ms)

    @classmethod
    def from_settings(
        cls,
        session_factory: async_sessionmaker[AsyncSession],
        settings: Settings,
    ) -> "PasswordlessContext":
        """Build a context from application settings."""
        return cls(
            session_factory=session_factory,
            code_lifetime_ms=settings.passwordless_code_lifetime_ms,
            max_code_input_attempts=settings.passwordless_max_code_input_attempts,
        )

    def is_expired(self, created_at: int) -> bool:
        """Whether a code created at ``created_at`` is past its lifetime."""
        return created_at < self.now_ms() - self.code_lifetime_ms
