"""Payment bridge exceptions."""

from modules.core.exceptions import ConflictError, ValidationError


class InvalidSignature(ValidationError):
    default_message = "Invalid payment signature."
    code = "invalid_signature"


class PaymentAlreadyCompleted(ConflictError):
    default_message = "Order is already paid."
    code = "payment_already_completed"


class PaymentMismatch(ValidationError):
    default_message = "Payment does not belong to this order."
    code = "payment_mismatch"
