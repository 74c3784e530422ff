"""
Custom Exceptions for BountyExpo
================================

Services raise these instead of HTTPException so the same rules hold when
called outside a request. `bountyexpo.main` turns every BountyExpoError into
the JSON error envelope with the class's HTTP status.

Usage:
    from bountyexpo.core.exceptions import BountyNotFoundError

    if not bounty:
        raise BountyNotFoundError(bounty_id)
"""

from typing import Optional, Any, Dict


class BountyExpoError(Exception):
    """Base exception for all BountyExpo errors"""

    http_status: int = 500

    def __init__(
        self,
        message: str,
        code: str = "INTERNAL_ERROR",
        details: Optional[Dict[str, Any]] = None
    ):
        self.message = message
        self.code = code
        self.details = details or {}
        super().__init__(self.message)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "code": self.code,
            "message": self.message,
            "details": self.details
        }


# ============================================
# Authentication & Authorization Errors
# ============================================

class AuthenticationError(BountyExpoError):
    """User authentication failed"""

    http_status = 401

    def __init__(self, message: str = "Authentication failed"):
        super().__init__(message, code="AUTH_FAILED")


class AuthorizationError(BountyExpoError):
    """User not authorized for this action"""

    http_status = 403

    def __init__(self, message: str = "Not authorized"):
        super().__init__(message, code="NOT_AUTHORIZED")


# ============================================
# Resource Errors (404-type)
# ============================================

class ResourceNotFoundError(BountyExpoError):
    """Base class for not found errors"""

    http_status = 404

    def __init__(self, resource_type: str, resource_id: str):
        super().__init__(
            f"{resource_type} with ID '{resource_id}' not found",
            code=f"{resource_type.upper().replace(' ', '_')}_NOT_FOUND",
            details={"resource_type": resource_type, "resource_id": resource_id}
        )


class BountyNotFoundError(ResourceNotFoundError):
    def __init__(self, bounty_id: str):
        super().__init__("Bounty", bounty_id)


class UserNotFoundError(ResourceNotFoundError):
    def __init__(self, user_id: str):
        super().__init__("User", user_id)


class BountyRequestNotFoundError(ResourceNotFoundError):
    def __init__(self, request_id: str):
        super().__init__("Bounty request", request_id)


class ConversationNotFoundError(ResourceNotFoundError):
    def __init__(self, conversation_id: str):
        super().__init__("Conversation", conversation_id)


class EscrowNotFoundError(ResourceNotFoundError):
    """No escrow hold exists for the bounty"""

    def __init__(self, bounty_id: str):
        super().__init__("Escrow transaction", bounty_id)


# ============================================
# Validation Errors (400-type)
# ============================================

class ValidationError(BountyExpoError):
    """Input validation failed"""

    http_status = 400

    def __init__(self, message: str, field: Optional[str] = None):
        details = {"field": field} if field else {}
        super().__init__(message, code="VALIDATION_ERROR", details=details)


# ============================================
# Conflict Errors (409-type)
# ============================================

class ConflictError(BountyExpoError):
    """Request conflicts with the current state of the resource"""

    http_status = 409

    def __init__(self, message: str, code: str = "CONFLICT"):
        super().__init__(message, code=code)


class InvalidTransitionError(ConflictError):
    """Bounty status does not allow the requested action"""

    def __init__(self, action: str, current_status: str):
        super().__init__(
            f"Cannot {action} bounty with status: {current_status}",
            code="INVALID_TRANSITION"
        )
        self.details = {"action": action, "status": current_status}


class DuplicateRequestError(ConflictError):
    """Hunter already applied to the bounty"""

    def __init__(self, bounty_id: str):
        super().__init__("You have already applied to this bounty", code="DUPLICATE_REQUEST")
        self.details = {"bounty_id": bounty_id}


class EscrowConflictError(ConflictError):
    """Escrow already exists or was already settled"""

    def __init__(self, message: str):
        super().__init__(message, code="ESCROW_CONFLICT")


# ============================================
# Payment/Wallet Errors
# ============================================

class PaymentError(BountyExpoError):
    """Payment operation failed"""

    http_status = 400

    def __init__(self, message: str):
        super().__init__(message, code="PAYMENT_ERROR")


class InsufficientFundsError(PaymentError):
    """Wallet balance too low for the debit"""

    def __init__(self, required: int, available: int):
        super().__init__(
            f"Insufficient balance. Required: {required}, Available: {available}"
        )
        self.code = "INSUFFICIENT_FUNDS"
        self.details = {"required": required, "available": available}


# ============================================
# Helper function for API responses
# ============================================

def error_response(error: BountyExpoError) -> Dict[str, Any]:
    """Convert exception to API error response format"""
    return {
        "success": False,
        "error": error.to_dict()
    }
