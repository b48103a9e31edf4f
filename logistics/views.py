"""
Logistics App Views - Orders & Closing API
"""

from django.db.models import Q
from rest_framework import mixins, permissions, status, viewsets
from rest_framework.decorators import action
from rest_framework.response import Response

from core.models import UserRole
from core.views import IsAdminRole, ReadOnlyForSupervisor

from .exceptions import NotFoundError, OrderError, OrderValidationError, TransientStoreError
from .filters import OrderFilter
from .models import Order
from .serializers import (
    AssignDriverSerializer,
    ClosingSummarySerializer,
    LegStateSerializer,
    OrderFormSerializer,
    OrderIdsSerializer,
    OrderListSerializer,
    OrderSerializer,
)
from .services.assignment import (
    assign_driver,
    record_cancellation,
    record_delivery,
    record_pickup,
    update_leg_state,
)
from .services.closure import (
    build_closing_summary,
    close_orders,
    get_closure_candidates,
    list_all_orders,
    reopen_orders,
)
from .services.order_builder import OrderResult, build_order, update_order
from .services.queries import base_queryset, order_stats, search_orders
from .zones import default_zone_map

RESULT_STATUS = {
    OrderResult.ERROR_VALIDATION: status.HTTP_400_BAD_REQUEST,
    OrderResult.ERROR_NOT_FOUND: status.HTTP_404_NOT_FOUND,
    OrderResult.ERROR_STORE: status.HTTP_503_SERVICE_UNAVAILABLE,
}


def _truthy(value) -> bool:
    return str(value).lower() in ('1', 'true', 'yes', 'si')


def error_response(exc: OrderError) -> Response:
    """Map order engine errors to HTTP responses."""
    body = {'success': False, 'message': getattr(exc, 'message', str(exc))}
    if isinstance(exc, NotFoundError):
        return Response(body, status=status.HTTP_404_NOT_FOUND)
    if isinstance(exc, OrderValidationError):
        body['field'] = exc.field
        return Response(body, status=status.HTTP_400_BAD_REQUEST)
    if isinstance(exc, TransientStoreError):
        body['message'] = 'Servicio no disponible, intente nuevamente'
        return Response(body, status=status.HTTP_503_SERVICE_UNAVAILABLE)
    return Response(body, status=status.HTTP_400_BAD_REQUEST)


def result_response(result: OrderResult, success_status=status.HTTP_200_OK) -> Response:
    body = {'success': result.success, 'order_id': result.order_id, 'message': result.message}
    if result.success:
        return Response(body, status=success_status)
    if result.field:
        body['field'] = result.field
    return Response(body, status=RESULT_STATUS.get(result.error, status.HTTP_400_BAD_REQUEST))


class OrderViewSet(mixins.ListModelMixin,
                   mixins.RetrieveModelMixin,
                   viewsets.GenericViewSet):
    """
    ViewSet for Order management.

    - list: active orders (?include_closed=true for reporting, ?search=)
    - create / update / assign / cancel: administrators
    - pickup / deliver / leg_state: administrators and the assigned driver
    - supervisors read every order and change none
    """

    queryset = Order.objects.all()
    serializer_class = OrderSerializer
    filterset_class = OrderFilter

    ADMIN_ACTIONS = ('create', 'update', 'partial_update', 'assign_driver', 'cancel')

    def get_permissions(self):
        if self.action in self.ADMIN_ACTIONS:
            return [IsAdminRole()]
        return [permissions.IsAuthenticated(), ReadOnlyForSupervisor()]

    def get_serializer_class(self):
        if self.action == 'list':
            return OrderListSerializer
        return OrderSerializer

    def get_queryset(self):
        if getattr(self, 'swagger_fake_view', False):
            return Order.objects.none()

        user = self.request.user
        params = self.request.query_params

        if self.action == 'list':
            include_closed = _truthy(params.get('include_closed', ''))
            search = params.get('search')
            qs = search_orders(search, include_closed) if search else base_queryset(include_closed)
        else:
            qs = list_all_orders()

        if user.role in (UserRole.ADMIN, UserRole.SUPERVISOR):
            return qs
        if user.role == UserRole.DRIVER:
            return qs.filter(
                Q(pickup_driver=user, visible_to_pickup_driver=True)
                | Q(delivery_driver=user, visible_to_delivery_driver=True)
            )
        return qs.filter(provider=user)

    def create(self, request):
        serializer = OrderFormSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        result = build_order(dict(serializer.validated_data))
        return result_response(result, success_status=status.HTTP_201_CREATED)

    def update(self, request, pk=None, partial=False):
        serializer = OrderFormSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        result = update_order(pk, dict(serializer.validated_data))
        return result_response(result)

    def partial_update(self, request, pk=None):
        return self.update(request, pk=pk, partial=True)

    @action(detail=True, methods=['post'])
    def assign_driver(self, request, pk=None):
        """Assign a driver to the pickup or delivery leg."""
        order = self.get_object()
        serializer = AssignDriverSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        result = assign_driver(
            order.pk,
            serializer.validated_data['driver_id'],
            serializer.validated_data['leg'],
        )
        return Response(
            {'success': result.success, 'message': result.message},
            status=status.HTTP_200_OK if result.success else status.HTTP_400_BAD_REQUEST
        )

    @action(detail=True, methods=['post'])
    def leg_state(self, request, pk=None):
        order = self.get_object()
        serializer = LegStateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        try:
            order = update_leg_state(
                order.pk,
                serializer.validated_data['leg'],
                serializer.validated_data['state'],
            )
        except OrderError as e:
            return error_response(e)
        return Response(OrderSerializer(order).data)

    @action(detail=True, methods=['post'])
    def pickup(self, request, pk=None):
        return self._record_event(record_pickup)

    @action(detail=True, methods=['post'])
    def deliver(self, request, pk=None):
        return self._record_event(record_delivery)

    @action(detail=True, methods=['post'])
    def cancel(self, request, pk=None):
        return self._record_event(record_cancellation)

    def _record_event(self, event):
        order = self.get_object()
        try:
            order = event(order.pk)
        except OrderError as e:
            return error_response(e)
        return Response(OrderSerializer(order).data)

    @action(detail=False, methods=['get'])
    def stats(self, request):
        """Order counts per derived status and collected total."""
        include_closed = _truthy(request.query_params.get('include_closed', ''))
        return Response(order_stats(include_closed))

    @action(detail=False, methods=['get'])
    def districts(self, request):
        """District catalogue for the order form."""
        return Response(default_zone_map.districts())


class ClosingViewSet(viewsets.ViewSet):
    """
    Admin closing cycle.

    - list: closure candidates (delivered/cancelled, not closed)
    - summary: totals over the candidates
    - close / reopen: {"order_ids": [...]}, all-or-nothing
    """

    permission_classes = [IsAdminRole]

    def list(self, request):
        candidates = get_closure_candidates()
        return Response(OrderListSerializer(candidates, many=True).data)

    @action(detail=False, methods=['get'])
    def summary(self, request):
        summary = build_closing_summary(get_closure_candidates())
        return Response(ClosingSummarySerializer(summary).data)

    @action(detail=False, methods=['post'])
    def close(self, request):
        serializer = OrderIdsSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        try:
            changed = close_orders(serializer.validated_data['order_ids'])
        except OrderError as e:
            return error_response(e)
        return Response({
            'success': True,
            'closed': changed,
            'message': f"Cierre completado: {changed} pedidos cerrados",
        })

    @action(detail=False, methods=['post'])
    def reopen(self, request):
        serializer = OrderIdsSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        try:
            changed = reopen_orders(serializer.validated_data['order_ids'])
        except OrderError as e:
            return error_response(e)
        return Response({
            'success': True,
            'reopened': changed,
            'message': f"{changed} pedidos reabiertos",
        })
