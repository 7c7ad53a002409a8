from typing import Dict, FrozenSet, List, Optional, Union

from ..enums import OrderStatus


TERMINAL_STATUSES: FrozenSet[OrderStatus] = frozenset({OrderStatus.DELIVERED, OrderStatus.CANCELLED})

# pending may jump anywhere; once fulfilment starts only forward moves or cancellation
_TRANSITIONS: Dict[OrderStatus, FrozenSet[OrderStatus]] = {
    OrderStatus.PENDING: frozenset({
        OrderStatus.PROCESSING,
        OrderStatus.SHIPPED,
        OrderStatus.DELIVERED,
        OrderStatus.CANCELLED,
    }),
    OrderStatus.PROCESSING: frozenset({OrderStatus.SHIPPED, OrderStatus.DELIVERED, OrderStatus.CANCELLED}),
    OrderStatus.SHIPPED: frozenset({OrderStatus.DELIVERED, OrderStatus.CANCELLED}),
    OrderStatus.DELIVERED: frozenset(),
    OrderStatus.CANCELLED: frozenset(),
}

# position on the customer-facing tracker, cancelled orders are off the track
_PROGRESS_STEPS = {
    OrderStatus.PENDING: 0,
    OrderStatus.PROCESSING: 1,
    OrderStatus.SHIPPED: 2,
    OrderStatus.DELIVERED: 3,
    OrderStatus.CANCELLED: -1,
}


def _parse(raw: Union[str, OrderStatus, None]) -> Optional[OrderStatus]:
    if isinstance(raw, OrderStatus):
        return raw
    if raw is None:
        return None
    try:
        return OrderStatus(str(raw).strip().lower())
    except ValueError:
        return None


def normalize_status(raw: Union[str, OrderStatus, None]) -> OrderStatus:
    """'Pending', 'pending', None and anything unrecognised all read as pending."""
    return _parse(raw) or OrderStatus.PENDING


def can_transition(current: Union[str, OrderStatus, None], target: Union[str, OrderStatus, None]) -> bool:
    target_status = _parse(target)
    if target_status is None:
        return False
    return target_status in _TRANSITIONS[normalize_status(current)]


def allowed_transitions(current: Union[str, OrderStatus, None]) -> List[OrderStatus]:
    """Targets reachable from ``current``, in pipeline order."""
    reachable = _TRANSITIONS[normalize_status(current)]
    return [status for status in OrderStatus if status in reachable]


def is_terminal(status: Union[str, OrderStatus, None]) -> bool:
    return normalize_status(status) in TERMINAL_STATUSES


def progress_step(status: Union[str, OrderStatus, None]) -> int:
    return _PROGRESS_STEPS[normalize_status(status)]
