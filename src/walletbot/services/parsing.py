# This project was developed with assistance from AI tools.
"""Input parsing for conversation stages.

Pure functions that validate and normalize the free text a user sends
at each stage. Failures raise ``InputValidationError`` carrying the
localization key of the re-prompt.
"""

import re
from collections.abc import Collection
from decimal import Decimal, InvalidOperation
from typing import NamedTuple

from ..core.errors import InputValidationError
from ..enums import Region, Role

_CENTS = Decimal("0.01")
# amounts of 10 billion or more are rejected before quantizing to cents
_MAX_EXPONENT = 9
_DIGITS = re.compile(r"[0-9]+")
_CURRENCY_CHARS = re.compile(r"[$,]")
_MOBILE_NUMBER = re.compile(r"\+?\d{9,13}")
_AFFIRMATIVE = frozenset({"yes", "y", "yeah", "ok", "hongu", "ehe", "✅"})
_NEGATIVE = frozenset({"no", "n", "kwete", "❌"})

_REGION_ALIASES: dict[str, Region] = {
    "a": Region.REGION_A,
    "regiona": Region.REGION_A,
    "region_a": Region.REGION_A,
    "b": Region.REGION_B,
    "regionb": Region.REGION_B,
    "region_b": Region.REGION_B,
}


class ProfileCommand(NamedTuple):
    """A global profile switch such as ``role elder``."""

    field: str
    value: str


def parse_pin(value: str) -> str:
    """Validate a 4-digit numeric PIN."""
    pin = value.strip()
    if not re.fullmatch(r"\d{4}", pin):
        raise InputValidationError("PIN must be 4 digits", key="pin.invalid")
    return pin


def parse_choice(value: str, options: Collection[int], *, key: str = "menu.invalid") -> int:
    """Parse a single menu digit and check it is one of ``options``."""
    cleaned = value.strip()
    if not _DIGITS.fullmatch(cleaned) or int(cleaned) not in options:
        raise InputValidationError(f"Invalid menu choice {cleaned!r}", key=key)
    return int(cleaned)


def parse_index(value: str) -> int | None:
    """Return the list number typed by the user, or None when it is not a plain number."""
    cleaned = value.strip()
    return int(cleaned) if _DIGITS.fullmatch(cleaned) else None


def parse_amount(value: str, *, key: str = "amount.invalid") -> Decimal:
    """Parse a currency amount such as ``20``, ``$20`` or ``$2 to 0772123456``.

    The currency symbol is optional and anything after the first token is
    ignored. Amounts must be positive with at most two decimal places.
    """
    fields = _CURRENCY_CHARS.sub("", value).split()
    if not fields:
        raise InputValidationError("Amount is missing", key=key)
    try:
        amount = Decimal(fields[0])
    except InvalidOperation:
        raise InputValidationError(f"Could not parse amount {fields[0]!r}", key=key) from None
    if not amount.is_finite() or amount <= 0:
        raise InputValidationError(f"Amount must be positive, got {fields[0]!r}", key=key)
    if amount.adjusted() > _MAX_EXPONENT:
        raise InputValidationError(f"Amount is out of range: {fields[0]!r}", key=key)
    if amount != amount.quantize(_CENTS):
        raise InputValidationError(f"Amount has more than two decimals: {fields[0]!r}", key=key)
    return amount.quantize(_CENTS)


def parse_airtime(value: str) -> tuple[Decimal, str | None]:
    """Parse ``$2 to 0772123456`` into the amount and the mobile number, if any."""
    amount = parse_amount(value, key="airtime.invalid")
    tokens = value.strip().split(maxsplit=1)
    match = _MOBILE_NUMBER.search(tokens[1]) if len(tokens) > 1 else None
    return amount, match.group(0) if match else None


def parse_name(value: str) -> str:
    """Title-case a person's name, collapsing whitespace."""
    name = " ".join(part.capitalize() for part in value.split())
    if not name:
        raise InputValidationError("Name is empty", key="name.invalid")
    return name


def parse_free_text(value: str, *, key: str) -> str:
    text = " ".join(value.split())
    if not text:
        raise InputValidationError("Text is empty", key=key)
    return text


def is_affirmative(value: str) -> bool:
    words = set(value.lower().split())
    return bool(words & _AFFIRMATIVE) or "yes" in value.lower()


def is_negative(value: str) -> bool:
    return bool(set(value.lower().split()) & _NEGATIVE)


def parse_profile_command(value: str) -> ProfileCommand | None:
    """Recognize ``role <role>``, ``region <a|b>`` and ``language <code>``.

    Returns None when the text is not a profile command, so the caller
    falls through to normal stage dispatch. A recognized command with an
    unknown value raises ``InputValidationError``.
    """
    parts = value.strip().lower().split()
    if len(parts) != 2:
        return None
    command, argument = parts
    if command == "role":
        try:
            return ProfileCommand("role", Role(argument).value)
        except ValueError:
            raise InputValidationError(f"Unknown role {argument!r}", key="profile.bad_role") from None
    if command == "region":
        region = _REGION_ALIASES.get(argument)
        if region is None:
            raise InputValidationError(f"Unknown region {argument!r}", key="profile.bad_region")
        return ProfileCommand("region", region.value)
    if command in ("language", "lang"):
        if not re.fullmatch(r"[a-z]{2,3}", argument):
            raise InputValidationError(
                f"Unknown language {argument!r}", key="profile.bad_language"
            )
        return ProfileCommand("language", argument)
    return None
