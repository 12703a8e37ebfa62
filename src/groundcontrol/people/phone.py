"""
Phone number normalization.
"""

import re

_NON_DIGITS = re.compile(r"\D")


def normalize_phone(value: str | None) -> str:
    """Reduce a US phone number to its ten digit form.

    "+1 (555) 010-2000" and "555.010.2000" both become "5550102000".
    Inputs that do not contain a ten digit number are returned as their digits.
    """
    if not value:
        return ""
    digits = _NON_DIGITS.sub("", value)
    if len(digits) == 11 and digits.startswith("1"):
        digits = digits[1:]
    return digits
