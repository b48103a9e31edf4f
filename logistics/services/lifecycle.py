"""
Lifecycle Classifier for the courier dashboard

Derives an order's status from its date fields and assignment legs.
Status is never stored: it is re-derived on every read.

Rule precedence (first match wins):
    1. delivered_at set                                   -> delivered
    2. cancelled_at set                                   -> cancelled
    3. pickup leg completed OR delivery leg en route      -> in-progress
    4. otherwise                                          -> pending

`status_filter` expresses the same table as database filters so listings
can filter on the derived status.
"""

import logging
from typing import Callable, List, Tuple

from django.db.models import Q

from logistics.exceptions import DataQualityWarning
from logistics.models import AssignmentState, Order, OrderStatus

logger = logging.getLogger(__name__)

# 30 x 30 x 30 cm
OVERSIZED_VOLUME_THRESHOLD = 27000.0


def _is_delivered(order) -> bool:
    return order.delivered_at is not None


def _is_cancelled(order) -> bool:
    return order.cancelled_at is not None


def _is_in_progress(order) -> bool:
    return (
        order.pickup_state == AssignmentState.COMPLETED
        or order.delivery_state == AssignmentState.EN_ROUTE
    )


STATUS_RULES: Tuple[Tuple[Callable[[Order], bool], str], ...] = (
    (_is_delivered, OrderStatus.DELIVERED),
    (_is_cancelled, OrderStatus.CANCELLED),
    (_is_in_progress, OrderStatus.IN_PROGRESS),
)

FINISHED_STATUSES = frozenset([OrderStatus.DELIVERED, OrderStatus.CANCELLED])


def classify(order) -> str:
    for matches, status in STATUS_RULES:
        if matches(order):
            return status
    return OrderStatus.PENDING


def is_eligible_for_closure(order) -> bool:
    """Finished (delivered or cancelled) and not yet closed."""
    return classify(order) in FINISHED_STATUSES and not order.is_closed


# ============================================
# DATABASE MIRROR OF THE RULE TABLE
# ============================================

_DELIVERED_Q = Q(delivered_at__isnull=False)
_CANCELLED_Q = Q(cancelled_at__isnull=False)
_IN_PROGRESS_Q = (
    Q(pickup_state=AssignmentState.COMPLETED)
    | Q(delivery_state=AssignmentState.EN_ROUTE)
)


def status_filter(status: str) -> Q:
    """Q object selecting the orders `classify` maps to `status`."""
    if status == OrderStatus.DELIVERED:
        return _DELIVERED_Q
    if status == OrderStatus.CANCELLED:
        return _CANCELLED_Q & ~_DELIVERED_Q
    if status == OrderStatus.IN_PROGRESS:
        return _IN_PROGRESS_Q & ~_DELIVERED_Q & ~_CANCELLED_Q
    if status == OrderStatus.PENDING:
        return ~_DELIVERED_Q & ~_CANCELLED_Q & ~_IN_PROGRESS_Q
    raise ValueError(f"Estado desconocido: {status}")


def finished_filter() -> Q:
    return _DELIVERED_Q | _CANCELLED_Q


# ============================================
# DATA QUALITY
# ============================================

def find_data_quality_issues(order) -> List[DataQualityWarning]:
    """
    Conditions that are persisted as-is but must be flagged downstream:
    - negative provider payout on a charged order
    - both delivery and cancellation dates set
    - oversized flag disagreeing with the computed volume
    """
    issues = []

    if order.is_charged and order.provider_payout < 0:
        issues.append(DataQualityWarning(
            code=DataQualityWarning.NEGATIVE_PAYOUT,
            order_id=order.id,
            message=(
                f"Monto a devolver negativo ({order.provider_payout}): "
                f"cobro {order.total_charged} < comisión {order.commission}"
            ),
        ))

    if order.delivered_at is not None and order.cancelled_at is not None:
        issues.append(DataQualityWarning(
            code=DataQualityWarning.DELIVERED_AND_CANCELLED,
            order_id=order.id,
            message="Pedido con fecha de entrega y de anulación",
        ))

    if order.package_volume is not None:
        exceeds = order.package_volume > OVERSIZED_VOLUME_THRESHOLD
        if exceeds != order.is_oversized:
            issues.append(DataQualityWarning(
                code=DataQualityWarning.OVERSIZED_MISMATCH,
                order_id=order.id,
                message=(
                    f"Volumen {order.package_volume:g} cm³ no coincide con "
                    f"paquete grande={order.is_oversized}"
                ),
            ))

    return issues


def log_data_quality_issues(order) -> List[DataQualityWarning]:
    issues = find_data_quality_issues(order)
    for issue in issues:
        logger.warning(f"[DATA QUALITY] Order {issue.order_id} | {issue.code} | {issue.message}")
    return issues
