"""Tests for passwordless response schemas.

Wire form is camelCase; models are immutable and reject unknown fields.
"""

import pytest
from pydantic import ValidationError

from passwordless.models.user import PasswordlessUser
from passwordless.schemas import (
    ConsumeCodeResponse,
    CreateCodeResponse,
    FieldUpdate,
    UserInfo,
)

_USER = {
    "user_id": "00000000-0000-0000-0000-000000000001",
    "email": "test@example.com",
    "time_joined": 1_000,
}


class TestUserInfo:
    """Tests for UserInfo."""

    def test_dumps_camel_case(self):
        """by_alias dump uses camelCase keys."""
        dumped = UserInfo(**_USER).model_dump(by_alias=True)
        assert dumped == {
            "userId": _USER["user_id"],
            "email": "test@example.com",
            "phoneNumber": None,
            "timeJoined": 1_000,
        }

    def test_accepts_camel_case_input(self):
        """Aliases are accepted on input."""
        user = UserInfo.model_validate(
            {"userId": "u1", "phoneNumber": "+1555", "timeJoined": 5}
        )
        assert user.phone_number == "+1555"

    def test_from_model(self):
        """Builds from the ORM row."""
        row = PasswordlessUser(
            user_id="u1", email=None, phone_number="+1555", time_joined=7
        )
        user = UserInfo.from_model(row)
        assert user.user_id == "u1"
        assert user.phone_number == "+1555"
        assert user.time_joined == 7

    def test_rejects_extra_fields(self):
        """Unknown fields are rejected."""
        with pytest.raises(ValidationError):
            UserInfo(**_USER, nickname="x")

    def test_is_frozen(self):
        """Instances are immutable."""
        user = UserInfo(**_USER)
        with pytest.raises(ValidationError):
            user.email = "other@example.com"


class TestResponses:
    """Tests for the create/consume responses."""

    def test_create_code_response_dump(self):
        """All fields are serialized with camelCase keys."""
        response = CreateCodeResponse(
            device_id_hash="h",
            code_id="c",
            device_id="d",
            user_input_code="ab12C3",
            link_code="l",
            time_created=1,
        )
        assert set(response.model_dump(by_alias=True)) == {
            "deviceIdHash",
            "codeId",
            "deviceId",
            "userInputCode",
            "linkCode",
            "timeCreated",
        }

    def test_consume_code_response_nests_user(self):
        """User is nested under 'user'."""
        response = ConsumeCodeResponse(created_new_user=True, user=UserInfo(**_USER))
        dumped = response.model_dump(by_alias=True)
        assert dumped["createdNewUser"] is True
        assert dumped["user"]["userId"] == _USER["user_id"]


class TestFieldUpdate:
    """Tests for FieldUpdate."""

    def test_none_clears(self):
        """new_value may be None."""
        assert FieldUpdate(new_value=None).new_value is None

    def test_new_value_is_required(self):
        """new_value has no default."""
        with pytest.raises(ValidationError):
            FieldUpdate()
