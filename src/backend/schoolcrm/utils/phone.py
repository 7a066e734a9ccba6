import re
from typing import Any, Optional
from urllib.parse import quote

import phonenumbers
from phonenumbers import NumberParseException, PhoneNumberFormat

from schoolcrm.config import settings

NON_DIGIT_RE = re.compile(r"\D")


def normalize_phone(value: Any) -> str:
    """Strip every non-digit character. `None` becomes an empty string."""
    if value is None:
        return ""
    return NON_DIGIT_RE.sub("", str(value))


def whatsapp_number(phone: str) -> str:
    digits = normalize_phone(phone)
    country_code = settings.whatsapp_country_code
    if digits.startswith(country_code):
        return digits
    return f"{country_code}{digits}"


def whatsapp_link(phone: str, message: Optional[str] = None) -> str:
    base_url = f"https://wa.me/{whatsapp_number(phone)}"
    if message:
        return f"{base_url}?text={quote(message, safe='')}"
    return base_url


def format_phone_display(phone: Optional[str]) -> Optional[str]:
    """Render a stored digits-only phone in international format when it parses."""
    digits = normalize_phone(phone)
    if not digits:
        return None
    try:
        number = phonenumbers.parse(f"+{whatsapp_number(digits)}", None)
    except NumberParseException:
        return digits
    if not phonenumbers.is_possible_number(number):
        return digits
    return phonenumbers.format_number(number, PhoneNumberFormat.INTERNATIONAL)
