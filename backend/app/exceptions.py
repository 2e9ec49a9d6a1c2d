"""
ShopFloor MRP - Custom Exception Hierarchy

Provides structured, typed exceptions with error codes for consistent
error handling across the application.

Usage:
    from app.exceptions import NotFoundError, ValidationError

    # In a service
    raise NotFoundError("Work order", work_order_id)

    # With custom message
    raise ValidationError("Quantity must be a positive integer", field="quantity")
"""
from typing import Any, Dict, List, Optional


class ShopFloorException(Exception):
    """
    Base exception for all ShopFloor errors.

    Attributes:
        message: Human-readable error message
        error_code: Machine-readable error code (e.g., "NOT_FOUND", "VALIDATION_ERROR")
        status_code: HTTP status code to return
        details: Additional context for debugging
    """

    error_code: str = "SHOPFLOOR_ERROR"
    status_code: int = 500

    def __init__(
        self,
        message: str = "An unexpected error occurred",
        *,
        details: Optional[Dict[str, Any]] = None,
    ):
        self.message = message
        self.details = details or {}
        super().__init__(self.message)

    def to_dict(self) -> Dict[str, Any]:
        """Convert exception to dictionary for API response."""
        result = {
            "error": self.error_code,
            "message": self.message,
        }
        if self.details:
            result["details"] = self.details
        return result


# ===================
# 400 Bad Request Errors
# ===================


class ValidationError(ShopFloorException):
    """Raised when caller input fails validation. Never retried automatically."""

    error_code = "VALIDATION_ERROR"
    status_code = 400

    def __init__(
        self,
        message: str = "Validation failed",
        *,
        field: Optional[str] = None,
        value: Any = None,
        details: Optional[Dict[str, Any]] = None,
    ):
        details = details or {}
        if field:
            details["field"] = field
        if value is not None:
            details["value"] = str(value)
        super().__init__(message, details=details)


class ReferentialIntegrityError(ShopFloorException):
    """Raised when a write references a row that does not exist."""

    error_code = "REFERENTIAL_INTEGRITY_ERROR"
    status_code = 400

    def __init__(
        self,
        message: str = "Referenced record does not exist",
        *,
        resource: Optional[str] = None,
        resource_id: Any = None,
        details: Optional[Dict[str, Any]] = None,
    ):
        details = details or {}
        if resource:
            details["resource"] = resource
        if resource_id is not None:
            details["resource_id"] = str(resource_id)
        super().__init__(message, details=details)


# ===================
# 401 Unauthorized Errors
# ===================


class AuthenticationError(ShopFloorException):
    """Raised when authentication fails."""

    error_code = "AUTHENTICATION_ERROR"
    status_code = 401

    def __init__(
        self,
        message: str = "Authentication required",
        *,
        details: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message, details=details)


class InvalidTokenError(AuthenticationError):
    """Raised when the bearer token cannot be verified."""

    error_code = "INVALID_TOKEN"

    def __init__(
        self,
        message: str = "Invalid token",
        *,
        details: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message, details=details)


# ===================
# 403 Forbidden Errors
# ===================


class PermissionDeniedError(ShopFloorException):
    """Raised when the caller's role lacks permission for an action."""

    error_code = "PERMISSION_DENIED"
    status_code = 403

    def __init__(
        self,
        message: str = "Permission denied",
        *,
        action: Optional[str] = None,
        required_role: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
    ):
        details = details or {}
        if action:
            details["action"] = action
        if required_role:
            details["required_role"] = required_role
        super().__init__(message, details=details)


# ===================
# 404 Not Found Errors
# ===================


class NotFoundError(ShopFloorException):
    """Raised when a resource is not found."""

    error_code = "NOT_FOUND"
    status_code = 404

    def __init__(
        self,
        resource: str = "Resource",
        resource_id: Any = None,
        *,
        message: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
    ):
        details = details or {}
        details["resource"] = resource
        if resource_id is not None:
            details["resource_id"] = str(resource_id)
        if message is None:
            message = f"{resource} not found"
            if resource_id is not None:
                message = f"{resource} with ID {resource_id} not found"
        super().__init__(message, details=details)


class NoBomFoundError(NotFoundError):
    """Raised when a product has no active bill of materials."""

    error_code = "NO_BOM_FOUND"

    def __init__(
        self,
        product_id: Any,
        *,
        details: Optional[Dict[str, Any]] = None,
    ):
        details = details or {}
        details["product_id"] = str(product_id)
        super().__init__(
            "Bill of materials",
            message=f"No active bill of materials found for product {product_id}",
            details=details,
        )


# ===================
# 409 Conflict Errors
# ===================


class ConflictError(ShopFloorException):
    """Raised when a state guard or uniqueness rule is violated."""

    error_code = "CONFLICT"
    status_code = 409

    def __init__(
        self,
        message: str = "Resource conflict",
        *,
        details: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message, details=details)


class DuplicateError(ConflictError):
    """Raised when attempting to create a duplicate resource."""

    error_code = "DUPLICATE_ERROR"

    def __init__(
        self,
        resource: str = "Resource",
        *,
        field: Optional[str] = None,
        value: Any = None,
        details: Optional[Dict[str, Any]] = None,
    ):
        details = details or {}
        details["resource"] = resource
        if field:
            details["field"] = field
        if value is not None:
            details["value"] = str(value)
        message = f"{resource} already exists"
        if field and value:
            message = f"{resource} with {field}='{value}' already exists"
        super().__init__(message, details=details)


class InvalidStateError(ConflictError):
    """Raised when an operation is invalid for the current status."""

    error_code = "INVALID_STATE"

    def __init__(
        self,
        message: str = "Operation not allowed in current state",
        *,
        current_state: Optional[str] = None,
        allowed_states: Optional[List[str]] = None,
        details: Optional[Dict[str, Any]] = None,
    ):
        details = details or {}
        if current_state:
            details["current_state"] = current_state
        if allowed_states is not None:
            details["allowed_states"] = allowed_states
        super().__init__(message, details=details)


class AlreadyCompletedError(InvalidStateError):
    """Raised when completing a work order that is already completed."""

    error_code = "ALREADY_COMPLETED"

    def __init__(
        self,
        work_order_id: Any,
        *,
        details: Optional[Dict[str, Any]] = None,
    ):
        details = details or {}
        details["work_order_id"] = str(work_order_id)
        super().__init__(
            f"Work order {work_order_id} is already completed",
            current_state="completed",
            allowed_states=[],
            details=details,
        )


# ===================
# 422 Unprocessable Entity Errors
# ===================


class BusinessRuleError(ShopFloorException):
    """Raised when a business rule is violated."""

    error_code = "BUSINESS_RULE_ERROR"
    status_code = 422

    def __init__(
        self,
        message: str = "Business rule violation",
        *,
        rule: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
    ):
        details = details or {}
        if rule:
            details["rule"] = rule
        super().__init__(message, details=details)


class InsufficientStockError(BusinessRuleError):
    """Raised when a stock movement would drive the balance below zero."""

    error_code = "INSUFFICIENT_STOCK"

    def __init__(
        self,
        product_name: str,
        *,
        requested: int,
        available: int,
        details: Optional[Dict[str, Any]] = None,
    ):
        details = details or {}
        details["product"] = product_name
        details["requested"] = requested
        details["available"] = available
        message = f"Insufficient stock for {product_name}: requested {requested}, available {available}"
        super().__init__(message, rule="non_negative_stock", details=details)


# ===================
# 500 Internal Server Errors
# ===================


class PersistenceError(ShopFloorException):
    """Raised when the store fails. Safe to retry; writes are transactional."""

    error_code = "PERSISTENCE_ERROR"
    status_code = 500

    def __init__(
        self,
        message: str = "Database operation failed",
        *,
        details: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message, details=details)
