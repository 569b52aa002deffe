"""Payment provider exceptions and decline classification."""

from siplocal_schemas import DeclineReason

# Provider decline code -> user-facing reason. Square codes are upper case,
# Stripe codes lower case.
DECLINE_CODES: dict[str, DeclineReason] = {
    "CARD_DECLINED": DeclineReason.DECLINED,
    "card_declined": DeclineReason.DECLINED,
    "GENERIC_DECLINE": DeclineReason.DECLINED,
    "INSUFFICIENT_FUNDS": DeclineReason.INSUFFICIENT_FUNDS,
    "insufficient_funds": DeclineReason.INSUFFICIENT_FUNDS,
    "CVV_FAILURE": DeclineReason.VERIFICATION_FAILED,
    "ADDRESS_VERIFICATION_FAILURE": DeclineReason.VERIFICATION_FAILED,
    "incorrect_cvc": DeclineReason.VERIFICATION_FAILED,
    "incorrect_zip": DeclineReason.VERIFICATION_FAILED,
}

# Codes that get a more specific message than their reason's default
CODE_MESSAGES: dict[str, str] = {
    "CVV_FAILURE": "CVV verification failed. Please check your card details.",
    "incorrect_cvc": "CVV verification failed. Please check your card details.",
    "ADDRESS_VERIFICATION_FAILURE": (
        "Address verification failed. Please check your billing address."
    ),
    "incorrect_zip": "Address verification failed. Please check your billing address.",
}

REASON_MESSAGES: dict[DeclineReason, str] = {
    DeclineReason.DECLINED: "Card was declined. Please try a different payment method.",
    DeclineReason.INSUFFICIENT_FUNDS: (
        "Insufficient funds. Please try a different payment method."
    ),
    DeclineReason.VERIFICATION_FAILED: (
        "Card verification failed. Please check your card details."
    ),
    DeclineReason.GENERIC: "Payment failed. Please try again.",
}


def classify_decline(code: str | None) -> DeclineReason:
    """Map a provider error code to a decline reason."""
    if not code:
        return DeclineReason.GENERIC
    return DECLINE_CODES.get(code, DeclineReason.GENERIC)


def decline_message(code: str | None) -> str:
    """User-facing message for a provider error code."""
    if code and code in CODE_MESSAGES:
        return CODE_MESSAGES[code]
    return REASON_MESSAGES[classify_decline(code)]


class PaymentError(Exception):
    """Error during payment processing."""

    def __init__(
        self,
        message: str,
        code: str | None = None,
        decline_reason: DeclineReason | None = None,
        provider: str | None = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.code = code
        self.decline_reason = decline_reason or classify_decline(code)
        self.provider = provider

    @property
    def user_message(self) -> str:
        return decline_message(self.code)
