"""
Attendance code derivation and verification.

A code is the keyed SHA-256 digest of an employee's natural key and
case-folded display name:

    code = HMAC-SHA256(secret, strip(phone) + US + casefold(strip(name)))

rendered as 64 lowercase hex characters. The secret never appears in the
code and the digest cannot be inverted to recover the phone or name.
"""

from __future__ import annotations

import hashlib
import hmac
from functools import lru_cache

from headcount.core.config import settings
from headcount.core.exceptions import ConfigurationError

CODE_LENGTH = 64

# ASCII unit separator: keeps ("12", "3a") and ("123", "a") apart.
_SEPARATOR = "\x1f"


def normalize_key(natural_key: str) -> str:
    return natural_key.strip()


def normalize_name(display_name: str) -> str:
    # Case-folded so a re-save with different casing keeps the same code.
    return display_name.strip().casefold()


def check_secret(secret: str | None, min_length: int) -> str:
    """Return the stripped secret or raise :class:`ConfigurationError`."""
    if not secret or not secret.strip():
        raise ConfigurationError("CODE_SECRET is not set")
    secret = secret.strip()
    if len(secret.encode("utf-8")) < min_length:
        raise ConfigurationError(
            f"CODE_SECRET must be at least {min_length} bytes long"
        )
    return secret


def derive_code(natural_key: str, display_name: str, secret: str) -> str:
    """Derive the attendance code for an employee.

    Pure and deterministic. The secret is validated once at startup by
    :class:`CodeDeriver`, not here.
    """
    key = normalize_key(natural_key)
    name = normalize_name(display_name)
    if not key:
        raise ValueError("Natural key must not be empty")
    if not name:
        raise ValueError("Display name must not be empty")

    message = f"{key}{_SEPARATOR}{name}".encode("utf-8")
    return hmac.new(secret.encode("utf-8"), message, hashlib.sha256).hexdigest()


class CodeDeriver:
    """Binds a validated secret to :func:`derive_code`."""

    def __init__(self, secret: str | None, min_length: int = 32) -> None:
        self._secret = check_secret(secret, min_length)

    def derive(self, natural_key: str, display_name: str) -> str:
        return derive_code(natural_key, display_name, self._secret)

    def verify(self, code: str, natural_key: str, display_name: str) -> bool:
        """Constant-time check that *code* belongs to this employee."""
        try:
            expected = self.derive(natural_key, display_name)
        except ValueError:
            return False
        return hmac.compare_digest(code.encode("utf-8"), expected.encode("utf-8"))

    def __repr__(self) -> str:
        return "CodeDeriver(secret=<redacted>)"


@lru_cache
def get_code_deriver() -> CodeDeriver:
    """Process-wide deriver; raises :class:`ConfigurationError` on a bad secret."""
    return CodeDeriver(settings.CODE_SECRET, settings.CODE_SECRET_MIN_LENGTH)
