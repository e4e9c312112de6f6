from __future__ import annotations

import re
from abc import ABC, abstractmethod

from loguru import logger

from .errors import ValidationError


class PaymentStrategy(ABC):
    """
    Simulated payment method. Nothing is actually charged; every payment is
    approved once its details validate.
    """

    @abstractmethod
    def process(self, amount: float) -> bool: ...

    @abstractmethod
    def details(self) -> str: ...


class GCashPayment(PaymentStrategy):
    def __init__(self, number: str):
        number = (number or "").strip()
        if not number:
            raise ValidationError("GCash number is required")
        self.number = number

    def process(self, amount: float) -> bool:
        logger.info("Processing GCash payment of ${:.2f} using number {}", amount, self.number)
        return True

    def details(self) -> str:
        return f"GCash: {self.number}"


class CreditCardPayment(PaymentStrategy):
    def __init__(self, card_number: str, expiry: str, cvv: str):
        digits = re.sub(r"[\s-]", "", card_number or "")
        if not digits.isdigit() or len(digits) < 4:
            raise ValidationError("card number must contain at least 4 digits")
        if not re.fullmatch(r"(0[1-9]|1[0-2])/\d{2}", (expiry or "").strip()):
            raise ValidationError("expiry date must be MM/YY")
        if not re.fullmatch(r"\d{3,4}", (cvv or "").strip()):
            raise ValidationError("CVV must be 3 or 4 digits")
        self.last4 = digits[-4:]
        self.expiry = expiry.strip()

    def process(self, amount: float) -> bool:
        logger.info("Processing credit card payment of ${:.2f} using card ending with {}", amount, self.last4)
        return True

    def details(self) -> str:
        return f"Credit Card: XXXX-XXXX-XXXX-{self.last4}"
