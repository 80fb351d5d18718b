"""
Order status model.

The lifecycle is a fixed linear progression

    pending -> accepted -> preparing -> ready -> picked_up -> delivering -> delivered

plus the terminal ``cancelled`` and ``refunded`` states. Everything the
screens derive from a status (badge label and color, the next action a chef
or delivery partner can take, the progress bar, list filter tabs) is a
lookup on the tables below.
"""

from dataclasses import dataclass
from typing import Dict, List, Optional, Tuple

from domain.enums import OrderFilter, OrderStatus, UserRole

STATUS_SEQUENCE: Tuple[OrderStatus, ...] = (
    OrderStatus.PENDING,
    OrderStatus.ACCEPTED,
    OrderStatus.PREPARING,
    OrderStatus.READY,
    OrderStatus.PICKED_UP,
    OrderStatus.DELIVERING,
    OrderStatus.DELIVERED,
)

TERMINAL_STATUSES = frozenset(
    {OrderStatus.DELIVERED, OrderStatus.CANCELLED, OrderStatus.REFUNDED}
)

REFUNDABLE_STATUSES = frozenset({OrderStatus.CANCELLED, OrderStatus.DELIVERED})


@dataclass(frozen=True)
class StatusDisplay:
    label: str
    color: str


STATUS_DISPLAY: Dict[OrderStatus, StatusDisplay] = {
    OrderStatus.PENDING: StatusDisplay("Pending", "yellow"),
    OrderStatus.ACCEPTED: StatusDisplay("Accepted", "blue"),
    OrderStatus.PREPARING: StatusDisplay("Preparing", "purple"),
    OrderStatus.READY: StatusDisplay("Ready", "indigo"),
    OrderStatus.PICKED_UP: StatusDisplay("Picked Up", "cyan"),
    OrderStatus.DELIVERING: StatusDisplay("On the Way", "orange"),
    OrderStatus.DELIVERED: StatusDisplay("Delivered", "green"),
    OrderStatus.CANCELLED: StatusDisplay("Cancelled", "red"),
    OrderStatus.REFUNDED: StatusDisplay("Refunded", "gray"),
}


@dataclass(frozen=True)
class StatusAction:
    """A button offered to a role while an order sits in a given status"""

    role: UserRole
    label: str
    target: OrderStatus


NEXT_ACTIONS: Dict[OrderStatus, StatusAction] = {
    OrderStatus.PENDING: StatusAction(UserRole.CHEF, "Accept", OrderStatus.ACCEPTED),
    OrderStatus.ACCEPTED: StatusAction(
        UserRole.CHEF, "Start Preparing", OrderStatus.PREPARING
    ),
    OrderStatus.PREPARING: StatusAction(UserRole.CHEF, "Mark Ready", OrderStatus.READY),
    OrderStatus.READY: StatusAction(UserRole.DELIVERY, "Pick Up", OrderStatus.PICKED_UP),
    OrderStatus.PICKED_UP: StatusAction(
        UserRole.DELIVERY, "Start Delivery", OrderStatus.DELIVERING
    ),
    OrderStatus.DELIVERING: StatusAction(
        UserRole.DELIVERY, "Mark Delivered", OrderStatus.DELIVERED
    ),
}

# Chefs may turn down a new order.
DECLINABLE_STATUSES = frozenset({OrderStatus.PENDING})

# (label, status) pairs of the customer progress bar
PROGRESS_STEPS: Tuple[Tuple[str, OrderStatus], ...] = (
    ("Confirmed", OrderStatus.ACCEPTED),
    ("Preparing", OrderStatus.PREPARING),
    ("Ready", OrderStatus.READY),
    ("On the Way", OrderStatus.DELIVERING),
    ("Delivered", OrderStatus.DELIVERED),
)

FILTER_GROUPS: Dict[OrderFilter, Optional[Tuple[OrderStatus, ...]]] = {
    OrderFilter.ALL: None,
    OrderFilter.ACTIVE: STATUS_SEQUENCE[:-1],
    OrderFilter.COMPLETED: (OrderStatus.DELIVERED,),
    OrderFilter.CANCELLED: (OrderStatus.CANCELLED, OrderStatus.REFUNDED),
}


def sequence_index(status: OrderStatus) -> int:
    """Position of ``status`` in the linear progression, -1 for cancelled/refunded."""
    try:
        return STATUS_SEQUENCE.index(OrderStatus(status))
    except ValueError:
        return -1


def is_terminal(status: OrderStatus) -> bool:
    return OrderStatus(status) in TERMINAL_STATUSES


def is_active(status: OrderStatus) -> bool:
    return not is_terminal(status)


def can_cancel(status: OrderStatus) -> bool:
    return is_active(status)


def can_transition(current: OrderStatus, target: OrderStatus) -> bool:
    """
    Whether an order may move from ``current`` to ``target``.

    Forward moves along the progression may skip steps; nothing moves
    backwards. Any non-terminal order can be cancelled, and cancelled or
    delivered orders can be refunded.
    """
    current = OrderStatus(current)
    target = OrderStatus(target)
    if current == target:
        return False
    if target == OrderStatus.CANCELLED:
        return can_cancel(current)
    if target == OrderStatus.REFUNDED:
        return current in REFUNDABLE_STATUSES
    if is_terminal(current):
        return False
    return sequence_index(target) > sequence_index(current)


def next_action(status: OrderStatus, role: Optional[UserRole] = None) -> Optional[StatusAction]:
    """The forward action offered for ``status``, optionally only if ``role`` owns it."""
    action = NEXT_ACTIONS.get(OrderStatus(status))
    if action is None:
        return None
    if role is not None and UserRole(role) != action.role:
        return None
    return action


def allowed_targets(status: OrderStatus, role: UserRole) -> List[OrderStatus]:
    """Statuses ``role`` may move an order to from ``status``."""
    status = OrderStatus(status)
    role = UserRole(role)
    if role == UserRole.ADMIN:
        return [s for s in OrderStatus if can_transition(status, s)]

    targets: List[OrderStatus] = []
    action = next_action(status, role)
    if action is not None:
        targets.append(action.target)
    if role == UserRole.CHEF and status in DECLINABLE_STATUSES:
        targets.append(OrderStatus.CANCELLED)
    return targets


@dataclass(frozen=True)
class ProgressStep:
    label: str
    status: OrderStatus
    completed: bool
    current: bool


def progress(status: OrderStatus) -> List[ProgressStep]:
    """
    Progress bar steps for ``status``.

    A step is completed once the order has reached it; ``picked_up`` has no
    step of its own and keeps "Ready" highlighted as the current step.
    """
    status = OrderStatus(status)
    current_index = sequence_index(status)
    steps = []
    for label, step_status in PROGRESS_STEPS:
        step_index = sequence_index(step_status)
        steps.append(
            ProgressStep(
                label=label,
                status=step_status,
                completed=current_index >= step_index,
                current=status == step_status
                or (status == OrderStatus.PICKED_UP and step_status == OrderStatus.READY),
            )
        )
    return steps


def statuses_for_filter(group: OrderFilter) -> Optional[Tuple[OrderStatus, ...]]:
    """Statuses matching a filter tab; ``None`` means no filtering."""
    return FILTER_GROUPS[OrderFilter(group)]


def matches_filter(status: OrderStatus, group: OrderFilter) -> bool:
    statuses = statuses_for_filter(group)
    return statuses is None or OrderStatus(status) in statuses


def display(status: OrderStatus) -> StatusDisplay:
    return STATUS_DISPLAY[OrderStatus(status)]
