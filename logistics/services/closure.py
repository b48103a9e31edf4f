"""
Closure Reconciler for the courier dashboard

The admin closing cycle:
- candidates: every delivered or cancelled order not yet closed, no date window
- close: is_closed=True, closed_at=now
- reopen: is_closed=False, closed_at=None (corrections)

A batch is all-or-nothing: one transaction, rows locked with
select_for_update, any unknown or unfinished order rolls back the batch.

Closed orders are excluded from every default listing; they stay
queryable through list_all_orders() for reporting.
"""

import logging
from collections import Counter
from dataclasses import dataclass, field
from typing import Callable, Dict, Iterable, List, Optional

from django.db import DatabaseError, transaction
from django.db.models import QuerySet
from django.utils import timezone

from logistics.exceptions import NotFoundError, OrderValidationError, TransientStoreError
from logistics.models import Order, OrderStatus
from logistics.services.lifecycle import classify, finished_filter, is_eligible_for_closure

logger = logging.getLogger(__name__)


def list_active_orders() -> QuerySet:
    """Active operations view: closed orders excluded, newest first."""
    return Order.objects.filter(is_closed=False).order_by('-created_at')


def list_all_orders() -> QuerySet:
    """Reporting view: closed orders included, newest first."""
    return Order.objects.all().order_by('-created_at')


def get_closure_candidates() -> QuerySet:
    return (
        Order.objects
        .filter(finished_filter(), is_closed=False)
        .order_by('-created_at')
    )


def _lock_batch(order_ids: Iterable[str]) -> List[Order]:
    ids = list(dict.fromkeys(order_ids))
    orders = {o.pk: o for o in Order.objects.select_for_update().filter(pk__in=ids)}
    missing = [order_id for order_id in ids if order_id not in orders]
    if missing:
        raise NotFoundError(f"Pedidos no encontrados: {', '.join(missing)}")
    return [orders[order_id] for order_id in ids]


def close_orders(order_ids: Iterable[str], clock: Optional[Callable] = None) -> int:
    """
    Close a batch of finished orders.

    Already-closed orders keep their original closed_at.
    Returns the number of orders that changed.
    """
    now = (clock or timezone.now)()
    try:
        with transaction.atomic():
            orders = _lock_batch(order_ids)
            unfinished = [o.pk for o in orders if not o.is_closed and not is_eligible_for_closure(o)]
            if unfinished:
                raise OrderValidationError(
                    'order_ids', f"Pedidos sin finalizar: {', '.join(unfinished)}"
                )

            to_close = [o.pk for o in orders if not o.is_closed]
            changed = Order.objects.filter(pk__in=to_close).update(is_closed=True, closed_at=now)
    except DatabaseError as e:
        logger.error(f"[CLOSURE] Close batch failed, rolled back: {e}")
        raise TransientStoreError(str(e)) from e

    logger.info(f"[CLOSURE] Closed {changed} order(s) of {len(orders)} requested")
    return changed


def reopen_orders(order_ids: Iterable[str]) -> int:
    """Reverse of close_orders. Returns the number of orders that changed."""
    try:
        with transaction.atomic():
            orders = _lock_batch(order_ids)
            to_reopen = [o.pk for o in orders if o.is_closed]
            changed = Order.objects.filter(pk__in=to_reopen).update(is_closed=False, closed_at=None)
    except DatabaseError as e:
        logger.error(f"[CLOSURE] Reopen batch failed, rolled back: {e}")
        raise TransientStoreError(str(e)) from e

    logger.info(f"[CLOSURE] Reopened {changed} order(s) of {len(orders)} requested")
    return changed


# ============================================
# CLOSING SUMMARY
# ============================================

@dataclass
class ProviderSubtotal:
    provider_name: str
    orders: int = 0
    total_charged: int = 0
    commission: int = 0
    provider_payout: int = 0


@dataclass
class ClosingSummary:
    orders: int = 0
    total_charged: int = 0
    commission: int = 0
    provider_payout: int = 0
    by_status: Dict[str, int] = field(default_factory=dict)
    by_provider: List[ProviderSubtotal] = field(default_factory=list)


def build_closing_summary(orders: Iterable[Order]) -> ClosingSummary:
    """Totals, counts per derived status and subtotals per provider."""
    summary = ClosingSummary()
    statuses = Counter({status: 0 for status in OrderStatus.values})
    providers: Dict[str, ProviderSubtotal] = {}

    for order in orders:
        statuses[classify(order)] += 1
        summary.orders += 1
        summary.total_charged += order.total_charged
        summary.commission += order.commission
        summary.provider_payout += order.provider_payout

        name = order.provider_name or 'Sin proveedor'
        subtotal = providers.setdefault(name, ProviderSubtotal(provider_name=name))
        subtotal.orders += 1
        subtotal.total_charged += order.total_charged
        subtotal.commission += order.commission
        subtotal.provider_payout += order.provider_payout

    summary.by_status = dict(statuses)
    summary.by_provider = sorted(providers.values(), key=lambda p: p.provider_name)
    return summary
