import re
from typing import Optional

_NON_DIGITS = re.compile(r"[^\d+]")


def normalize_phone(raw: Optional[str], country_code: str = "61") -> Optional[str]:
    """Coerce a phone number to E.164.

    '0413 346 978' -> '+61413346978', '61413346978' -> '+61413346978',
    '+61 413 346 978' -> '+61413346978'. Returns None for empty input.
    """
    if not raw:
        return None
    cleaned = _NON_DIGITS.sub("", raw.strip())
    if not cleaned:
        return None
    if cleaned.startswith("+"):
        return "+" + cleaned[1:].replace("+", "")
    cleaned = cleaned.replace("+", "")
    if cleaned.startswith("00"):
        return "+" + cleaned[2:]
    if cleaned.startswith("0"):
        return f"+{country_code}{cleaned[1:]}"
    if cleaned.startswith(country_code):
        return "+" + cleaned
    return f"+{country_code}{cleaned}"
