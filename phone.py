# phone.py - phone number normalization for the supported regions (KSA, Egypt)
import re

KSA_CODE = "966"
EGYPT_CODE = "20"

_NON_DIGITS = re.compile(r"\D")


class PhoneFormatError(ValueError):
    """Raised when a phone number cannot be normalized."""


def normalize_phone(raw) -> str:
    """Return a digits-only international number, e.g. ``966501234567``.

    Accepted shapes:
      KSA    966 + 5 + 8 digits, or shorthand 5xxxxxxxx / 05xxxxxxxx
      Egypt  20 + 1 + 9 digits,  or shorthand 1xxxxxxxxx / 01xxxxxxxxx
    Separators, a leading ``+`` and a ``00`` international prefix are ignored.
    """
    if raw is None or not str(raw).strip():
        raise PhoneFormatError("Phone number is required")

    digits = _NON_DIGITS.sub("", str(raw))
    if digits.startswith("00"):
        digits = digits[2:]

    if digits.startswith(KSA_CODE):
        if len(digits) != 12 or digits[3] != "5":
            raise PhoneFormatError("Invalid KSA phone number format")
        return digits

    if digits.startswith(EGYPT_CODE):
        if len(digits) != 12 or digits[2] != "1":
            raise PhoneFormatError("Invalid Egypt phone number format")
        return digits

    # Shorthand without the country code; a single trunk zero is dropped.
    local = digits[1:] if digits.startswith("0") else digits
    if local.startswith("5") and len(local) == 9:
        return KSA_CODE + local
    if local.startswith("1") and len(local) == 10:
        return EGYPT_CODE + local

    raise PhoneFormatError("Unsupported phone number format. Please use KSA (+966) or Egypt (+20) format")
