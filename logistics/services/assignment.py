"""
LOGISTICS - Driver assignment and lifecycle events

assign_driver is a boundary operation: it returns AssignmentResult and
never raises. The event helpers (pickup, delivery, cancellation, leg
state) raise OrderError subclasses; the API layer maps them to HTTP codes.

Events only ever write date fields and leg states. The derived status is
left to the lifecycle classifier.
"""

import logging
from dataclasses import dataclass
from typing import Callable, Optional

from django.contrib.auth import get_user_model
from django.db import DatabaseError, transaction
from django.utils import timezone

from core.models import AccountStatus, UserRole
from logistics.exceptions import (
    NotFoundError,
    OrderValidationError,
    TransientStoreError,
)
from logistics.models import AssignmentState, Leg, Order

logger = logging.getLogger(__name__)


@dataclass
class AssignmentResult:
    success: bool
    message: str


def _get_locked(order_id: str) -> Order:
    try:
        return Order.objects.select_for_update().get(pk=order_id)
    except Order.DoesNotExist:
        raise NotFoundError(f"Pedido {order_id} no existe")


def _get_driver(driver_id):
    User = get_user_model()
    try:
        driver = User.objects.get(pk=driver_id)
    except (User.DoesNotExist, ValueError, TypeError):
        raise NotFoundError(f"Motorizado {driver_id} no existe")
    if driver.role != UserRole.DRIVER or not driver.is_active or driver.status != AccountStatus.ACTIVE:
        raise OrderValidationError('driver_id', f"{driver.full_name} no es un motorizado activo")
    return driver


def _check_leg(leg: str):
    if leg not in Leg.values:
        raise OrderValidationError('leg', f"Tramo no válido: {leg}")


# ============================================
# ASSIGNMENT
# ============================================

def assign_driver(order_id: str, driver_id, leg: str = Leg.PICKUP,
                  clock: Optional[Callable] = None) -> AssignmentResult:
    """
    Assign a driver to the pickup or delivery leg.

    Route name becomes the driver's route when set, otherwise the leg
    keeps its current route. The pending reason is cleared and the leg
    becomes visible to the driver.
    """
    now = (clock or timezone.now)()
    try:
        _check_leg(leg)
        with transaction.atomic():
            order = _get_locked(order_id)
            if order.is_closed:
                raise OrderValidationError('order_id', "Pedido cerrado, reabrir antes de modificar")
            driver = _get_driver(driver_id)

            setattr(order, f'{leg}_driver', driver)
            setattr(order, f'{leg}_driver_name', driver.full_name)
            setattr(order, f'{leg}_state', AssignmentState.ASSIGNED)
            setattr(order, f'{leg}_assigned_at', now)
            setattr(order, f'{leg}_route_name', driver.route or getattr(order, f'{leg}_route_name'))
            setattr(order, f'{leg}_pending_reason', None)
            setattr(order, f'visible_to_{leg}_driver', True)
            order.save()
    except NotFoundError as e:
        logger.warning(f"[ASSIGN] {e}")
        return AssignmentResult(success=False, message=str(e))
    except OrderValidationError as e:
        logger.warning(f"[ASSIGN] Order {order_id}: {e.message}")
        return AssignmentResult(success=False, message=e.message)
    except DatabaseError as e:
        logger.error(f"[ASSIGN] Failed to assign driver to {order_id}: {e}")
        return AssignmentResult(success=False, message='Error al asignar motorizado')

    logger.info(f"[ASSIGN] {driver.full_name} → order {order_id} ({leg})")
    return AssignmentResult(
        success=True,
        message=f"Motorizado {driver.full_name} asignado exitosamente",
    )


# ============================================
# LIFECYCLE EVENTS
# ============================================

def _apply_event(order_id: str, mutate: Callable[[Order], None], label: str) -> Order:
    try:
        with transaction.atomic():
            order = _get_locked(order_id)
            if order.is_closed:
                raise OrderValidationError('order_id', "Pedido cerrado, reabrir antes de modificar")
            mutate(order)
            order.save()
    except DatabaseError as e:
        logger.error(f"[ORDERS] {label} failed for {order_id}: {e}")
        raise TransientStoreError(str(e)) from e

    logger.info(f"[ORDERS] {label} recorded for {order_id}")
    return order


def update_leg_state(order_id: str, leg: str, state: str) -> Order:
    _check_leg(leg)
    if state not in AssignmentState.values:
        raise OrderValidationError('state', f"Estado no válido: {state}")

    def mutate(order):
        setattr(order, f'{leg}_state', state)

    return _apply_event(order_id, mutate, f"{leg} state → {state}")


def record_pickup(order_id: str, clock: Optional[Callable] = None) -> Order:
    now = (clock or timezone.now)()

    def mutate(order):
        if order.cancelled_at is not None:
            raise OrderValidationError('picked_up_at', "El pedido está anulado")
        order.picked_up_at = order.picked_up_at or now
        order.pickup_state = AssignmentState.COMPLETED

    return _apply_event(order_id, mutate, "Pickup")


def record_delivery(order_id: str, clock: Optional[Callable] = None) -> Order:
    now = (clock or timezone.now)()

    def mutate(order):
        if order.cancelled_at is not None:
            raise OrderValidationError('delivered_at', "El pedido está anulado")
        order.delivered_at = order.delivered_at or now
        order.delivery_state = AssignmentState.COMPLETED

    return _apply_event(order_id, mutate, "Delivery")


def record_cancellation(order_id: str, clock: Optional[Callable] = None) -> Order:
    now = (clock or timezone.now)()

    def mutate(order):
        if order.delivered_at is not None:
            raise OrderValidationError('cancelled_at', "El pedido ya fue entregado")
        order.cancelled_at = order.cancelled_at or now

    return _apply_event(order_id, mutate, "Cancellation")
