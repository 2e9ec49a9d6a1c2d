"""Status Configuration and Transition Rules

Valid status values and allowed transitions for Manufacturing Orders and
Work Orders. Every status change in the workflow engine goes through
these tables; no transition returns an order to an earlier state.
"""
from enum import Enum
from typing import Dict, List, Set


# =============================================================================
# Manufacturing Order Status
# =============================================================================

class ManufacturingOrderStatus(str, Enum):
    """Valid status values for Manufacturing Orders"""
    DRAFT = "draft"
    CONFIRMED = "confirmed"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


# Allowed transitions: current_status -> set of allowed next statuses
MANUFACTURING_ORDER_TRANSITIONS: Dict[str, Set[str]] = {
    ManufacturingOrderStatus.DRAFT: {
        ManufacturingOrderStatus.CONFIRMED,
        ManufacturingOrderStatus.CANCELLED,
    },
    ManufacturingOrderStatus.CONFIRMED: {
        ManufacturingOrderStatus.IN_PROGRESS,
        ManufacturingOrderStatus.CANCELLED,
    },
    ManufacturingOrderStatus.IN_PROGRESS: {
        ManufacturingOrderStatus.COMPLETED,
        ManufacturingOrderStatus.CANCELLED,
    },
    ManufacturingOrderStatus.COMPLETED: set(),  # Terminal
    ManufacturingOrderStatus.CANCELLED: set(),  # Terminal
}

# Forward path walked when work-order activity drags an order along
MANUFACTURING_ORDER_PATH: List[str] = [
    ManufacturingOrderStatus.DRAFT.value,
    ManufacturingOrderStatus.CONFIRMED.value,
    ManufacturingOrderStatus.IN_PROGRESS.value,
    ManufacturingOrderStatus.COMPLETED.value,
]


def get_allowed_manufacturing_order_transitions(current_status: str) -> List[str]:
    """Get list of allowed next statuses for a manufacturing order"""
    return sorted(s.value for s in MANUFACTURING_ORDER_TRANSITIONS.get(current_status, set()))


def is_valid_manufacturing_order_transition(current_status: str, new_status: str) -> bool:
    """Check if a manufacturing order status transition is valid"""
    if current_status == new_status:
        return True  # No change is always valid
    allowed = MANUFACTURING_ORDER_TRANSITIONS.get(current_status, set())
    return new_status in allowed


def manufacturing_order_steps(current_status: str, target_status: str) -> List[str]:
    """
    Statuses to pass through to move an order forward to target_status.

    Returns an empty list when the order is already at (or past) the target.
    Raises StatusTransitionError when the target is not ahead on the path,
    e.g. for a cancelled order.
    """
    if current_status == target_status:
        return []
    if current_status not in MANUFACTURING_ORDER_PATH or target_status not in MANUFACTURING_ORDER_PATH:
        raise StatusTransitionError(
            "manufacturing order",
            current_status,
            target_status,
            get_allowed_manufacturing_order_transitions(current_status),
        )
    start = MANUFACTURING_ORDER_PATH.index(current_status)
    end = MANUFACTURING_ORDER_PATH.index(target_status)
    if end < start:
        return []
    return MANUFACTURING_ORDER_PATH[start + 1:end + 1]


# =============================================================================
# Work Order Status
# =============================================================================

class WorkOrderStatus(str, Enum):
    """Valid status values for Work Orders"""
    PENDING = "pending"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


WORK_ORDER_TRANSITIONS: Dict[str, Set[str]] = {
    WorkOrderStatus.PENDING: {
        WorkOrderStatus.IN_PROGRESS,
        WorkOrderStatus.COMPLETED,  # Direct completion from the shop floor
        WorkOrderStatus.CANCELLED,
    },
    WorkOrderStatus.IN_PROGRESS: {
        WorkOrderStatus.COMPLETED,
        WorkOrderStatus.CANCELLED,
    },
    WorkOrderStatus.COMPLETED: set(),  # Terminal
    WorkOrderStatus.CANCELLED: set(),  # Terminal
}

OPEN_WORK_ORDER_STATUSES = (
    WorkOrderStatus.PENDING.value,
    WorkOrderStatus.IN_PROGRESS.value,
)


def get_allowed_work_order_transitions(current_status: str) -> List[str]:
    """Get list of allowed next statuses for a work order"""
    return sorted(s.value for s in WORK_ORDER_TRANSITIONS.get(current_status, set()))


def is_valid_work_order_transition(current_status: str, new_status: str) -> bool:
    """Check if a work order status transition is valid"""
    if current_status == new_status:
        return True
    allowed = WORK_ORDER_TRANSITIONS.get(current_status, set())
    return new_status in allowed


# =============================================================================
# Validation Helpers
# =============================================================================

class StatusTransitionError(Exception):
    """Raised when an invalid status transition is attempted"""
    def __init__(self, entity: str, current: str, requested: str, allowed: List[str]):
        self.entity = entity
        self.current = current
        self.requested = requested
        self.allowed = allowed
        super().__init__(
            f"Invalid {entity} status transition: '{current}' -> '{requested}'. "
            f"Allowed: {allowed if allowed else 'none (terminal state)'}"
        )


def validate_manufacturing_order_transition(current: str, new: str) -> None:
    """Validate and raise error if transition is invalid"""
    if not is_valid_manufacturing_order_transition(current, new):
        raise StatusTransitionError(
            "manufacturing order",
            current,
            new,
            get_allowed_manufacturing_order_transitions(current)
        )


def validate_work_order_transition(current: str, new: str) -> None:
    """Validate and raise error if transition is invalid"""
    if not is_valid_work_order_transition(current, new):
        raise StatusTransitionError(
            "work order",
            current,
            new,
            get_allowed_work_order_transitions(current)
        )
