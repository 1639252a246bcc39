"""Passwordless response schemas.

Fields are snake_case in Python and camelCase on the wire:
``model_dump(by_alias=True)`` produces the keys clients expect.
"""

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel

from passwordless.models.user import PasswordlessUser

_WIRE_CONFIG = ConfigDict(
    extra="forbid",
    frozen=True,
    alias_generator=to_camel,
    populate_by_name=True,
)


class UserInfo(BaseModel):
    """Passwordless user as returned to callers.

    Attributes:
        user_id: User UUID string.
        email: Email address, if any.
        phone_number: Phone number, if any.
        time_joined: Creation time in epoch milliseconds.
    """

    model_config = _WIRE_CONFIG

    user_id: str
    email: str | None = None
    phone_number: str | None = None
    time_joined: int

    @classmethod
    def from_model(cls, user: PasswordlessUser) -> "UserInfo":
        """Build from the ORM row."""
        return cls(
            user_id=user.user_id,
            email=user.email,
            phone_number=user.phone_number,
            time_joined=user.time_joined,
        )


class CreateCodeResponse(BaseModel):
    """Result of issuing a code.

    The device_id, user_input_code and link_code are secrets meant for the
    client and the delivery channel; only their hashes are stored.

    Attributes:
        device_id_hash: Stored hash of the device id.
        code_id: UUID of the new code.
        device_id: Standard base64 device id (client keeps it).
        user_input_code: Short code to type.
        link_code: base64url link code to embed in a login link.
        time_created: Creation time in epoch milliseconds.
    """

    model_config = _WIRE_CONFIG

    device_id_hash: str
    code_id: str
    device_id: str
    user_input_code: str
    link_code: str
    time_created: int


class ConsumeCodeResponse(BaseModel):
    """Result of consuming a code.

    Attributes:
        created_new_user: True if this consumption created the user.
        user: The signed-in user.
    """

    model_config = _WIRE_CONFIG

    created_new_user: bool
    user: UserInfo


class FieldUpdate(BaseModel):
    """Requested new value for a user contact field.

    Passing ``None`` instead of a FieldUpdate means "no change"; a
    FieldUpdate whose new_value is None clears the field.
    """

    model_config = ConfigDict(frozen=True)

    new_value: str | None
