"""Phone number normalization to E.164.

Uses phonenumbers (Google's libphonenumber) the same way the column-level
phone type does: parse against a default region, then format E.164.
Numbers are accepted only for the configured country; everything else is
rejected before any provider call is made.

Example:
    >>> normalize_phone("(212) 555-1234")
    '+12125551234'
    >>> normalize_phone("212.555.1234", default_country_code="1")
    '+12125551234'
"""

from __future__ import annotations

import phonenumbers


class PhoneNumberError(ValueError):
    """Raised when a phone number cannot be normalized."""

    def __init__(self, raw: str, reason: str) -> None:
        self.raw = raw
        self.reason = reason
        super().__init__(f"Invalid phone number {raw!r}: {reason}")


def normalize_phone(raw: str, default_country_code: str = "1") -> str:
    """Normalize ``raw`` to E.164 for the given country.

    Args:
        raw: Phone number in any common format.
        default_country_code: Calling code applied to national numbers.

    Returns:
        E.164 string (``+`` followed by digits).

    Raises:
        PhoneNumberError: If the number is empty, unparseable, the wrong
            length, or belongs to a different country.
    """
    value = (raw or "").strip()
    if not value:
        raise PhoneNumberError(raw, "empty")

    country_code = int(default_country_code)
    region = phonenumbers.region_code_for_country_code(country_code)

    # Bare digits with the country code already present, e.g. 12125551234.
    digits = "".join(ch for ch in value if ch.isdigit())
    if not value.startswith("+") and digits.startswith(default_country_code) and len(digits) > 10:
        value = f"+{digits}"

    try:
        parsed = phonenumbers.parse(value, region)
    except phonenumbers.NumberParseException as e:
        raise PhoneNumberError(raw, str(e)) from e

    if parsed.country_code != country_code:
        raise PhoneNumberError(raw, f"country code {parsed.country_code} not supported")
    # IS_POSSIBLE_LOCAL_ONLY (a 7-digit number without area code) is not dialable.
    if phonenumbers.is_possible_number_with_reason(parsed) != phonenumbers.ValidationResult.IS_POSSIBLE:
        raise PhoneNumberError(raw, "wrong length")

    return phonenumbers.format_number(parsed, phonenumbers.PhoneNumberFormat.E164)


__all__ = ["PhoneNumberError", "normalize_phone"]
