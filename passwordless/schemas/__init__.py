"""Pydantic schemas for passwordless results.

Re-exports for convenient imports:
    from passwordless.schemas import CreateCodeResponse, ConsumeCodeResponse
"""

from passwordless.schemas.passwordless import (
    ConsumeCodeResponse,
    CreateCodeResponse,
    FieldUpdate,
    UserInfo,
)

__all__ = [
    "ConsumeCodeResponse",
    "CreateCodeResponse",
    "FieldUpdate",
    "UserInfo",
]
