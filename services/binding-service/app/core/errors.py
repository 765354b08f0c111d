from __future__ import annotations


class BindingServiceError(Exception):
    """
    Base for every failure the service reports to a caller.

    status_code / reason are rendered by the app exception handler as
    {"ok": false, "error": <message>, "reason": <reason>}.
    """
    status_code: int = 500
    reason: str = "internal"
    default_message: str = "Internal Server Error"

    def __init__(self, message: str | None = None):
        self.message = message or self.default_message
        super().__init__(self.message)


class ValidationError(BindingServiceError):
    status_code = 400
    reason = "validation"
    default_message = "Invalid request"


class InvalidTokenError(BindingServiceError):
    status_code = 401
    reason = "invalid_token"
    default_message = "Invalid token"


class DeviceMismatchError(BindingServiceError):
    status_code = 403
    reason = "device_mismatch"
    default_message = "Token does not match this device"


class InvalidCodeError(BindingServiceError):
    status_code = 401
    reason = "invalid_code"
    default_message = "Bad code"


class CodeAlreadyClaimedError(BindingServiceError):
    status_code = 403
    reason = "code_already_claimed"
    default_message = "This code has already been used on another device."


class NotFoundError(BindingServiceError):
    status_code = 404
    reason = "not_found"
    default_message = "Code not found"


class AdminAuthError(BindingServiceError):
    status_code = 401
    reason = "admin_unauthorized"
    default_message = "Admin token required"


class StorageError(BindingServiceError):
    status_code = 500
    reason = "storage"
    default_message = "Storage unavailable"


class BindingConflictError(Exception):
    """
    Raised by a store when an insert collides with an existing binding for
    the same normalized code. Internal: the authorizer resolves it.
    """
    def __init__(self, code_norm: str):
        self.code_norm = code_norm
        super().__init__("Binding already exists for this code")
