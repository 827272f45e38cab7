"""
Domain exceptions for billing app.

Signature and payload errors are raised before anything is stored and are
turned into 401/400 responses by the webhook view. Errors raised while
applying a stored event are recorded on the event instead.
"""


class BillingServiceError(Exception):
    """Base exception for billing errors."""
    pass


class WebhookSignatureError(BillingServiceError):
    """Raised when a webhook body is unsigned or the signature does not match."""
    pass


class WebhookPayloadError(BillingServiceError):
    """Raised when a webhook body is malformed or lacks required fields."""
    pass


class UserNotFoundError(BillingServiceError):
    """Raised when a webhook references a user that does not exist."""
    pass
