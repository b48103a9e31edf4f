"""
LOGISTICS - Order listings, search and statistics

Every listing starts from the active view (closed orders excluded)
unless include_closed is passed explicitly. Status, district, driver,
route and date filters are applied on top by logistics.filters.OrderFilter.
"""

import logging
from typing import Optional

from django.db.models import Q, QuerySet, Sum

from logistics.models import OrderStatus
from logistics.services.closure import list_active_orders, list_all_orders
from logistics.services.lifecycle import status_filter

logger = logging.getLogger(__name__)


def base_queryset(include_closed: bool = False) -> QuerySet:
    return list_all_orders() if include_closed else list_active_orders()


def district_filter(district: str) -> Q:
    return Q(provider_district=district) | Q(recipient_district=district)


def driver_filter(driver_name: str) -> Q:
    return Q(pickup_driver_name=driver_name) | Q(delivery_driver_name=driver_name)


def route_filter(route_name: str) -> Q:
    return Q(pickup_route_name=route_name) | Q(delivery_route_name=route_name)


def search_orders(term: Optional[str], include_closed: bool = False) -> QuerySet:
    """Case-insensitive match on id, provider, recipient or districts."""
    qs = base_queryset(include_closed)
    term = (term or '').strip()
    if not term:
        return qs
    return qs.filter(
        Q(id__icontains=term)
        | Q(provider_name__icontains=term)
        | Q(recipient_name__icontains=term)
        | Q(provider_district__icontains=term)
        | Q(recipient_district__icontains=term)
    )


def order_stats(include_closed: bool = False) -> dict:
    qs = base_queryset(include_closed)
    stats = {'total': qs.count()}
    for status in OrderStatus:
        stats[status.value] = qs.filter(status_filter(status)).count()
    stats['total_amount'] = qs.aggregate(total=Sum('total_charged'))['total'] or 0
    logger.debug(f"[ORDERS] Stats: {stats}")
    return stats
