"""
Logistics App Filters - query-string filters for order listings
"""

import django_filters

from .models import Order, OrderStatus
from .services.lifecycle import status_filter
from .services.queries import district_filter, driver_filter, route_filter


class OrderFilter(django_filters.FilterSet):
    """
    ?status=       derived status (pending, in-progress, delivered, cancelled)
    ?district=     pickup or delivery district
    ?driver=       driver name on either leg
    ?route=        route name on either leg
    ?created_from= / ?created_to=  creation date range
    """

    status = django_filters.ChoiceFilter(choices=OrderStatus.choices, method='filter_status')
    district = django_filters.CharFilter(method='filter_district')
    driver = django_filters.CharFilter(method='filter_driver')
    route = django_filters.CharFilter(method='filter_route')
    created_from = django_filters.IsoDateTimeFilter(field_name='created_at', lookup_expr='gte')
    created_to = django_filters.IsoDateTimeFilter(field_name='created_at', lookup_expr='lte')

    class Meta:
        model = Order
        fields = ['payment_method', 'is_charged']

    def filter_status(self, queryset, name, value):
        return queryset.filter(status_filter(value))

    def filter_district(self, queryset, name, value):
        return queryset.filter(district_filter(value))

    def filter_driver(self, queryset, name, value):
        return queryset.filter(driver_filter(value))

    def filter_route(self, queryset, name, value):
        return queryset.filter(route_filter(value))
