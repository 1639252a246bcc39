"""SQLAlchemy ORM models for passwordless login.

All models are exported from this module for convenient imports:
    from passwordless.models import PasswordlessDevice, PasswordlessCode, ...

- device.py: PasswordlessDevice (login attempt anchor)
- code.py: PasswordlessCode (FK to device)
- user.py: PasswordlessUser (no FK, linked by contact value)
"""

from passwordless.models.base import Base
from passwordless.models.code import PasswordlessCode
from passwordless.models.device import PasswordlessDevice
from passwordless.models.user import PasswordlessUser

__all__ = [
    "Base",
    "PasswordlessDevice",
    "PasswordlessCode",
    "PasswordlessUser",
]
