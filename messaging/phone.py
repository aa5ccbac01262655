from __future__ import annotations

import re
from typing import Any

BRAZIL_COUNTRY_CODE = "55"
MIN_PHONE_DIGITS = 12  # country code + area code + subscriber number


# Local Brazilian numbers come as 10 digits (landline) or 11 (mobile, extra 9).
# Anything else is assumed to already carry a country code and passes through.
def normalize_phone(raw: Any) -> str:
    digits = re.sub(r"\D", "", "" if raw is None else str(raw))
    if not digits:
        return ""
    if len(digits) in (10, 11):
        return f"{BRAZIL_COUNTRY_CODE}{digits}"
    return digits


def is_valid_phone(phone: str) -> bool:
    return bool(phone) and len(phone) >= MIN_PHONE_DIGITS


def local_phone(phone: str) -> str:
    if phone.startswith(BRAZIL_COUNTRY_CODE):
        return phone[len(BRAZIL_COUNTRY_CODE):]
    return phone
