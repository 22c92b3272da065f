"""Random coupon code generation."""
from __future__ import annotations

import re
import secrets
from typing import Final

DEFAULT_PREFIX: Final[str] = "RRC"
CODE_MIN: Final[int] = 100_000
CODE_MAX: Final[int] = 999_999
# Number of distinct codes a single prefix can produce.
CODE_SPACE: Final[int] = CODE_MAX - CODE_MIN + 1

CODE_PATTERN: Final[re.Pattern[str]] = re.compile(r"^RRC-\d{6}$")

__all__ = ["CODE_PATTERN", "CODE_SPACE", "DEFAULT_PREFIX", "generate_code", "is_well_formed"]


def generate_code(prefix: str = DEFAULT_PREFIX) -> str:
    """Return a candidate code such as ``RRC-483920``.

    The numeric part is drawn uniformly from 100000..999999. Uniqueness is not
    checked here; that belongs to the pool manager.
    """
    number = CODE_MIN + secrets.randbelow(CODE_SPACE)
    return f"{prefix}-{number}"


def is_well_formed(code: str, prefix: str = DEFAULT_PREFIX) -> bool:
    """Return True if ``code`` has the ``<prefix>-NNNNNN`` shape."""
    head, sep, digits = code.partition("-")
    if head != prefix or not sep or len(digits) != 6:
        return False
    if not (digits.isascii() and digits.isdigit()):
        return False
    return CODE_MIN <= int(digits) <= CODE_MAX
