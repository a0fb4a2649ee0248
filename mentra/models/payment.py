"""Card form masking and validation for the mocked checkout.

Nothing here talks to a payment processor; the form only has to look complete
before the confirmation screen is shown.
"""
import re
from dataclasses import dataclass
from typing import Dict

CARD_DIGITS = 16
EXPIRY_LENGTH = 5
MIN_CVV_DIGITS = 3
MAX_CVV_DIGITS = 4

_NON_DIGIT = re.compile(r"\D")


def digits_only(value: str) -> str:
    return _NON_DIGIT.sub("", value or "")


def format_card_number(value: str) -> str:
    """'4242424242424242' -> '4242 4242 4242 4242', extra digits dropped."""
    digits = digits_only(value)[:CARD_DIGITS]
    return " ".join(digits[i:i + 4] for i in range(0, len(digits), 4))


def format_expiry(value: str) -> str:
    """'1227' -> '12/27'. The slash appears once the month is typed."""
    digits = digits_only(value)[:4]
    if len(digits) < 3:
        return digits
    return f"{digits[:2]}/{digits[2:]}"


def format_cvv(value: str) -> str:
    return digits_only(value)[:MAX_CVV_DIGITS]


@dataclass
class PaymentForm:
    """Client-side card form. Setters store the masked value."""
    name: str = ""
    card_number: str = ""
    expiry: str = ""
    cvv: str = ""

    _FORMATTERS = {
        "name": lambda v: (v or "").strip(),
        "card_number": format_card_number,
        "expiry": format_expiry,
        "cvv": format_cvv,
    }

    def update(self, field_name: str, value: str) -> str:
        if field_name not in self._FORMATTERS:
            raise KeyError(f"Unknown payment field: {field_name}")
        masked = self._FORMATTERS[field_name](value)
        setattr(self, field_name, masked)
        return masked

    def validate(self) -> Dict[str, str]:
        """Return field -> problem for every field that blocks submission."""
        errors = {}
        if not self.name.strip():
            errors["name"] = "Cardholder name is required"
        if len(digits_only(self.card_number)) < CARD_DIGITS:
            errors["card_number"] = f"Card number needs {CARD_DIGITS} digits"
        if len(self.expiry) != EXPIRY_LENGTH:
            errors["expiry"] = "Expiry must look like MM/YY"
        if len(digits_only(self.cvv)) < MIN_CVV_DIGITS:
            errors["cvv"] = f"CVV needs at least {MIN_CVV_DIGITS} digits"
        return errors

    @property
    def masked_number(self) -> str:
        """Card number as shown on the confirmation, all but the last four hidden."""
        digits = digits_only(self.card_number)
        if len(digits) < 4:
            return ""
        return f"•••• {digits[-4:]}"
