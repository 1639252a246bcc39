"""Cryptographic derivations for device ids and login codes.

A login attempt is anchored by a random 32-byte device id that only the
client holds. The server stores hashes:

- device id hash = base64url(SHA-256(device id bytes))
- link code      = base64url(HMAC-SHA256(key=device id bytes, msg=user input code))
- link code hash = base64(SHA-256(link code bytes)), storage lookup key only

The user input code is the short, typed form of the same secret: anyone
holding the device id and the user input code can rebuild the link code.
"""

import base64
import binascii
import hashlib
import hmac
import random
import secrets

from passwordless.core.errors import ValidationError

DEVICE_ID_LENGTH = 32
USER_INPUT_CODE_LENGTH = 6

# Confusable characters removed: I, O, l, o (and 0 from the digits)
USER_INPUT_CODE_ALPHA_CHARS = "ABCDEFGHJKLMNPQRSTUVWXYZabcdefghijkmnpqrstuvwxyz"
USER_INPUT_CODE_NUM_CHARS = "123456789"

# Letters in a row are capped to keep codes from spelling words
_MAX_CONSECUTIVE_ALPHA = 2

_system_random = secrets.SystemRandom()


def _restore_padding(value: str) -> str:
    """Append the "=" padding that transport may have stripped."""
    return value + "=" * (-len(value) % 4)


def generate_device_id_bytes() -> bytes:
    """Return fresh device id bytes from a CSPRNG."""
    return secrets.token_bytes(DEVICE_ID_LENGTH)


def encode_device_id(device_id_bytes: bytes) -> str:
    """Encode raw device id bytes for transport (standard base64)."""
    return base64.b64encode(device_id_bytes).decode("ascii")


def decode_device_id(device_id: str) -> bytes:
    """Decode a transport device id back to raw bytes.

    Missing trailing padding is accepted.

    Raises:
        ValidationError: If the value is not valid standard base64.
    """
    try:
        return base64.b64decode(_restore_padding(device_id), validate=True)
    except (binascii.Error, ValueError) as exc:
        raise ValidationError("Malformed device id") from exc


def hash_device_id(device_id_bytes: bytes) -> str:
    """Derive the stored device id hash."""
    digest = hashlib.sha256(device_id_bytes).digest()
    return base64.urlsafe_b64encode(digest).decode("ascii")


def generate_user_input_code(rng: random.Random | None = None) -> str:
    """Generate a 6-character code mixing letters and digits.

    Each position flips a fair coin between the letter and digit alphabets,
    except that after two letters in a row a digit is forced. The first two
    positions can never reach that cap, so they need no separate case.
    Selection inside each alphabet is uniform, so a specific letter is less
    likely than a specific digit.

    Args:
        rng: Random source. Defaults to the system CSPRNG; tests may inject
            a seeded random.Random.

    Returns:
        The generated code.
    """
    rng = rng or _system_random
    chars: list[str] = []
    consecutive_alpha = 0
    for _ in range(USER_INPUT_CODE_LENGTH):
        if consecutive_alpha < _MAX_CONSECUTIVE_ALPHA and rng.random() < 0.5:
            consecutive_alpha += 1
            chars.append(rng.choice(USER_INPUT_CODE_ALPHA_CHARS))
        else:
            consecutive_alpha = 0
            chars.append(rng.choice(USER_INPUT_CODE_NUM_CHARS))
    return "".join(chars)


def compute_link_code(device_id_bytes: bytes, user_input_code: str) -> bytes:
    """HMAC-SHA256 of the user input code keyed by the device id."""
    return hmac.new(
        device_id_bytes, user_input_code.encode("utf-8"), hashlib.sha256
    ).digest()


def encode_link_code(link_code_bytes: bytes) -> str:
    """Encode raw link code bytes for transport (base64url)."""
    return base64.urlsafe_b64encode(link_code_bytes).decode("ascii")


def decode_link_code(link_code: str) -> bytes:
    """Decode a transport link code back to raw bytes.

    Missing trailing padding is accepted. Characters of the standard
    alphabet ("+", "/") are not.

    Raises:
        ValidationError: If the value is not valid base64url.
    """
    if "+" in link_code or "/" in link_code:
        raise ValidationError("Malformed link code")
    try:
        return base64.b64decode(
            _restore_padding(link_code), altchars=b"-_", validate=True
        )
    except (binascii.Error, ValueError) as exc:
        raise ValidationError("Malformed link code") from exc


def hash_link_code(link_code_bytes: bytes) -> str:
    """Derive the stored link code hash (standard base64)."""
    digest = hashlib.sha256(link_code_bytes).digest()
    return base64.b64encode(digest).decode("ascii")


def link_code_hash_for(device_id_bytes: bytes, user_input_code: str) -> str:
    """Rebuild the link code hash a device/code pair would have been stored under."""
    return hash_link_code(compute_link_code(device_id_bytes, user_input_code))
