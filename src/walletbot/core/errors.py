# This project was developed with assistance from AI tools.
"""Domain error taxonomy.

Every error carries a localization key and format params so the
conversation engine can turn it into a reply in the user's language,
and a plain English message for logs and HTTP Problem Details.
"""

from typing import Any


class WalletBotError(Exception):
    """Base class for recoverable domain errors."""

    status_code: int = 400
    default_key: str = "error.generic"

    def __init__(self, message: str, *, key: str | None = None, **params: Any) -> None:
        super().__init__(message)
        self.message = message
        self.key = key or self.default_key
        self.params = params


class InputValidationError(WalletBotError):
    """Malformed PIN, amount or menu choice."""

    status_code = 422
    default_key = "error.invalid_input"


class NotFoundError(WalletBotError):
    """Unknown loan ID or stale selection index."""

    status_code = 404
    default_key = "error.not_found"


class AuthorizationError(WalletBotError):
    """Wrong role, wrong region, or not the applicant."""

    status_code = 403
    default_key = "error.not_authorized"


class InsufficientResourceError(WalletBotError):
    """Wallet balance or remaining credit too low."""

    status_code = 409
    default_key = "error.insufficient"


class LoanStateError(WalletBotError):
    """Operation not allowed while the loan is in its current status."""

    status_code = 409
    default_key = "error.loan_state"
