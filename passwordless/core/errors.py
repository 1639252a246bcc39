"""Passwordless error classes.

Two families share one base class:

- Flow errors returned to the caller: RestartFlowError,
  ExpiredUserInputCodeError, IncorrectUserInputCodeError,
  DuplicateLinkCodeHashError (when the caller pinned the code),
  UnknownUserIdError, DuplicateEmailError, DuplicatePhoneNumberError,
  ValidationError.
- Storage collisions translated from IntegrityError by the repositories.
  DuplicateCodeIdError, DuplicateDeviceIdHashError and DuplicateUserIdError
  are retried by the services and never reach the caller.
"""


class PasswordlessError(Exception):
    """Base class for passwordless errors.

    Attributes:
        code: Machine-readable error code (e.g., "RESTART_FLOW").
        message: Human-readable error message.
        details: Optional list of additional error details.
    """

    def __init__(
        self,
        code: str,
        message: str,
        details: list[dict] | None = None,
    ) -> None:
        self.code = code
        self.message = message
        self.details = details
        super().__init__(message)


class ValidationError(PasswordlessError):
    """Malformed input (bad encoding, wrong entry mode, missing contact)."""

    def __init__(
        self,
        message: str,
        details: list[dict] | None = None,
    ) -> None:
        super().__init__(
            code="VALIDATION_ERROR",
            message=message,
            details=details,
        )


class RestartFlowError(PasswordlessError):
    """The login attempt cannot continue; the client must request a new code.

    Raised when the device or link is gone or expired, when the attempt
    limit was exhausted, or when the post-consumption state became
    inconsistent.
    """

    def __init__(self, message: str = "Login attempt expired, please restart") -> None:
        super().__init__(code="RESTART_FLOW", message=message)


class _AttemptError(PasswordlessError):
    """Recoverable wrong-code outcome carrying the attempt counters."""

    def __init__(
        self,
        code: str,
        message: str,
        failed_attempts: int,
        max_attempts: int,
    ) -> None:
        self.failed_attempts = failed_attempts
        self.max_attempts = max_attempts
        super().__init__(
            code=code,
            message=message,
            details=[
                {
                    "failed_attempts": failed_attempts,
                    "max_attempts": max_attempts,
                }
            ],
        )


class ExpiredUserInputCodeError(_AttemptError):
    """The typed code matched but has expired. Counts as a failed attempt."""

    def __init__(self, failed_attempts: int, max_attempts: int) -> None:
        super().__init__(
            code="EXPIRED_USER_INPUT_CODE",
            message="The code has expired",
            failed_attempts=failed_attempts,
            max_attempts=max_attempts,
        )


class IncorrectUserInputCodeError(_AttemptError):
    """No code matched the typed value. Counts as a failed attempt."""

    def __init__(self, failed_attempts: int, max_attempts: int) -> None:
        super().__init__(
            code="INCORRECT_USER_INPUT_CODE",
            message="The code is incorrect",
            failed_attempts=failed_attempts,
            max_attempts=max_attempts,
        )


class DuplicateLinkCodeHashError(PasswordlessError):
    """A code with the same link code hash already exists.

    Retryable when the input code was generated; permanent when the caller
    pinned both the device id and the user input code.
    """

    def __init__(self) -> None:
        super().__init__(
            code="DUPLICATE_LINK_CODE",
            message="A code with this link code already exists",
        )


class DuplicateCodeIdError(PasswordlessError):
    """Generated code id collided with an existing one (retryable)."""

    def __init__(self) -> None:
        super().__init__(code="DUPLICATE_CODE_ID", message="Code id already exists")


class DuplicateDeviceIdHashError(PasswordlessError):
    """Generated device id hash collided with an existing one (retryable)."""

    def __init__(self) -> None:
        super().__init__(
            code="DUPLICATE_DEVICE_ID_HASH",
            message="Device id hash already exists",
        )


class UnknownDeviceIdHashError(PasswordlessError):
    """No device exists for the given device id hash."""

    def __init__(self) -> None:
        super().__init__(
            code="UNKNOWN_DEVICE_ID_HASH",
            message="Device not found",
        )


class DuplicateUserIdError(PasswordlessError):
    """Generated user id collided with an existing one (retryable)."""

    def __init__(self) -> None:
        super().__init__(code="DUPLICATE_USER_ID", message="User id already exists")


class UnknownUserIdError(PasswordlessError):
    """No user exists for the given user id."""

    def __init__(self, user_id: str | None = None) -> None:
        if user_id:
            message = f"User with id '{user_id}' not found"
        else:
            message = "User not found"
        super().__init__(code="UNKNOWN_USER_ID", message=message)


class DuplicateEmailError(PasswordlessError):
    """Another user already owns this email address."""

    def __init__(self) -> None:
        super().__init__(
            code="DUPLICATE_EMAIL",
            message="Email already belongs to another user",
        )


class DuplicatePhoneNumberError(PasswordlessError):
    """Another user already owns this phone number."""

    def __init__(self) -> None:
        super().__init__(
            code="DUPLICATE_PHONE_NUMBER",
            message="Phone number already belongs to another user",
        )
