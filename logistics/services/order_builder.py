"""
Order Record Builder for the courier dashboard

Assembles a complete Order from raw form input:

    form input
        → validate (OrderValidationError naming the field)
        → normalise phones / names
        → zone group per leg (placeholder route when ungrouped)
        → commission (auto or manual) + payment breakdown
        → cutoff rule on the scheduled delivery date
        → geocode both addresses
        → persist, log data quality warnings

`build_order` / `update_order` are the boundary: they never raise, they
return an OrderResult the API layer can render.

Form input keys:
    provider_name, provider_phone, provider_address, provider_district,
    provider_email, provider_id,
    recipient_name, recipient_phone, recipient_address, recipient_district,
    package_description, observations,
    package_height, package_width, package_length, is_oversized,
    is_charged, payment_method, amount_to_collect, commission_override,
    scheduled_delivery_date,
    payment_status, wallet_used, picked_up_at, delivered_at, cancelled_at (edit only),
    pickup_* / delivery_* assignment fields (edit only)
"""

import logging
import random
import re
from dataclasses import dataclass
from datetime import date, datetime, timedelta
from decimal import Decimal, InvalidOperation
from typing import Any, Callable, Dict, Optional

from django.conf import settings
from django.contrib.auth import get_user_model
from django.db import DatabaseError, transaction
from django.utils import timezone
from django.utils.dateparse import parse_date, parse_datetime

from logistics.exceptions import (
    NotFoundError,
    OrderValidationError,
    TransientStoreError,
)
from logistics.models import (
    DELIVERY_PLACEHOLDER_ROUTE,
    MANUAL_ASSIGNMENT_REASON,
    PICKUP_PLACEHOLDER_ROUTE,
    AssignmentState,
    CommissionMode,
    Leg,
    Order,
    PaymentMethod,
    PaymentStatus,
    Wallet,
)
from logistics.services.geocoding import GeocodingResolver
from logistics.services.lifecycle import log_data_quality_issues
from logistics.services.pricing import (
    AutoCommission,
    ManualCommission,
    PricingEngine,
)
from logistics.zones import DistrictZoneMap, default_zone_map

logger = logging.getLogger(__name__)


INVALID_PHONE_SENTINEL = '900000009'
LOCAL_PHONE_PATTERN = re.compile(r'^\d{9}$')
COUNTRY_CODE = '51'
NON_PRINTABLE_PATTERN = re.compile(r'[^\x20-\x7E]')
PHONE_SEPARATORS_PATTERN = re.compile(r'[\s\-+]')

MAX_ID_ATTEMPTS = 5

TRUE_VALUES = frozenset(['true', '1', 'si', 'sí', 'yes', 'grande'])
FALSE_VALUES = frozenset(['false', '0', 'no', 'normal', ''])

REQUIRED_FIELDS = (
    'provider_name',
    'provider_phone',
    'provider_district',
    'provider_address',
    'recipient_name',
    'recipient_phone',
    'recipient_district',
    'recipient_address',
    'package_description',
    'scheduled_delivery_date',
)

EDITABLE_DATE_FIELDS = ('picked_up_at', 'delivered_at', 'cancelled_at')

LEG_FIELDS = ('state', 'route_id', 'route_name', 'driver', 'driver_name',
              'assigned_at', 'pending_reason')

LEG_PLACEHOLDERS = {
    Leg.PICKUP: PICKUP_PLACEHOLDER_ROUTE,
    Leg.DELIVERY: DELIVERY_PLACEHOLDER_ROUTE,
}


@dataclass
class OrderResult:
    success: bool
    order_id: Optional[str] = None
    message: str = ''
    error: Optional[str] = None
    field: Optional[str] = None

    ERROR_VALIDATION = 'validation'
    ERROR_NOT_FOUND = 'not_found'
    ERROR_STORE = 'store'


# ============================================
# NORMALISATION
# ============================================

def clean_phone(value: Any) -> str:
    """
    Local 9-digit number, or the sentinel when it cannot be recovered.

    Example: "+51 987-654-321" -> "987654321", "12345" -> "900000009"

    The 51 country code is only stripped from 11-digit numbers, so a local
    number that happens to start with 51 ("512345678") is kept.
    """
    if not value:
        return INVALID_PHONE_SENTINEL
    cleaned = NON_PRINTABLE_PATTERN.sub('', str(value))
    cleaned = PHONE_SEPARATORS_PATTERN.sub('', cleaned)
    if len(cleaned) == 11 and cleaned.startswith(COUNTRY_CODE):
        cleaned = cleaned[len(COUNTRY_CODE):]
    if LOCAL_PHONE_PATTERN.match(cleaned):
        return cleaned
    return INVALID_PHONE_SENTINEL


def clean_string(value: Any) -> str:
    """Letters and whitespace only."""
    if not value:
        return ''
    return ''.join(ch for ch in str(value) if ch.isalpha() or ch.isspace()).strip()


def capitalize_name(value: Any) -> str:
    if not value:
        return ''
    text = str(value).replace('.', '').replace(',', '')
    return ' '.join(word.capitalize() for word in text.split())


def generate_order_id(moment: datetime, rng=random) -> str:
    """DD-MM-YYYY-HHMMSS-RRRRRR in local time."""
    local = timezone.localtime(moment) if timezone.is_aware(moment) else moment
    suffix = rng.randint(100000, 999999)
    return f"{local.strftime('%d-%m-%Y-%H%M%S')}-{suffix}"


def compute_volume(height, width, length) -> Optional[float]:
    if height and width and length and height > 0 and width > 0 and length > 0:
        return height * width * length
    return None


# ============================================
# INPUT PARSING
# ============================================

def _is_blank(value: Any) -> bool:
    return value is None or (isinstance(value, str) and not value.strip())


def parse_flag(field: str, value: Any, required: bool = False) -> bool:
    if isinstance(value, bool):
        return value
    if value is None:
        if required:
            raise OrderValidationError(field, "Campo requerido")
        return False
    text = str(value).strip().lower()
    if text in TRUE_VALUES:
        return True
    if text in FALSE_VALUES:
        if required and not text:
            raise OrderValidationError(field, "Campo requerido")
        return False
    raise OrderValidationError(field, f"Valor no válido: {value}")


def parse_amount(field: str, value: Any) -> Optional[Decimal]:
    if _is_blank(value):
        return None
    try:
        amount = Decimal(str(value).strip())
    except InvalidOperation:
        raise OrderValidationError(field, f"Monto no válido: {value}")
    if not amount.is_finite():
        raise OrderValidationError(field, f"Monto no válido: {value}")
    return amount


def parse_dimension(field: str, value: Any) -> Optional[float]:
    amount = parse_amount(field, value)
    return float(amount) if amount is not None else None


def parse_delivery_date(field: str, value: Any) -> date:
    if isinstance(value, datetime):
        return timezone.localtime(value).date() if timezone.is_aware(value) else value.date()
    if isinstance(value, date):
        return value
    text = str(value).strip()
    parsed = None
    try:
        parsed = parse_date(text)
        if parsed is None:
            moment = parse_datetime(text)
            if moment is not None:
                return parse_delivery_date(field, moment)
    except ValueError:
        parsed = None
    if parsed is None:
        raise OrderValidationError(field, f"Fecha no válida: {value}")
    return parsed


def parse_moment(field: str, value: Any) -> Optional[datetime]:
    if _is_blank(value):
        return None
    if isinstance(value, datetime):
        moment = value
    else:
        try:
            moment = parse_datetime(str(value).strip())
        except ValueError:
            moment = None
        if moment is None:
            raise OrderValidationError(field, f"Fecha no válida: {value}")
    if timezone.is_naive(moment):
        moment = timezone.make_aware(moment)
    return moment


def parse_choice(field: str, value: Any, choices, default=None):
    if _is_blank(value):
        return default
    if value not in choices.values:
        raise OrderValidationError(field, f"Opción no válida: {value}")
    return value


# ============================================
# BUILDER
# ============================================

class OrderRecordBuilder:
    """
    Create / edit orders.

    Collaborators are injectable for tests:
        zone_map  - DistrictZoneMap
        pricing   - PricingEngine
        geocoder  - object with resolve(address) -> Coordinates
        clock     - callable returning an aware datetime
    """

    def __init__(self, zone_map: Optional[DistrictZoneMap] = None,
                 pricing: Optional[PricingEngine] = None,
                 geocoder=None,
                 clock: Optional[Callable[[], datetime]] = None,
                 rng=None):
        self.zone_map = zone_map or default_zone_map
        self.pricing = pricing or PricingEngine(self.zone_map)
        self.geocoder = geocoder or GeocodingResolver()
        self.clock = clock or timezone.now
        self.rng = rng or random
        self.cutoff_hour = settings.ORDER_CUTOFF_HOUR

    # ------------------------------------------
    # Create
    # ------------------------------------------

    def build(self, data: Dict[str, Any]) -> Order:
        fields = self._derive_fields(data)
        now = self.clock()
        local_now = timezone.localtime(now)

        requested = fields['scheduled_delivery_date']
        fields['scheduled_delivery_date'] = self.apply_cutoff(requested, local_now)
        fields['allows_early_delivery'] = local_now.hour < self.cutoff_hour

        for leg, district in ((Leg.PICKUP, fields['provider_district']),
                              (Leg.DELIVERY, fields['recipient_district'])):
            route_name, reason = self.route_for(leg, district)
            fields[f'{leg}_state'] = AssignmentState.PENDING
            fields[f'{leg}_route_name'] = route_name
            fields[f'{leg}_pending_reason'] = reason

        order_id = self._unique_order_id(now)
        order = Order(id=order_id, created_at=now, version=1, **fields)

        try:
            order.save(force_insert=True)
        except DatabaseError as e:
            logger.error(f"[ORDERS] Failed to save order {order_id}: {e}")
            raise TransientStoreError(str(e)) from e

        logger.info(
            f"[ORDERS] Created {order.id} | {order.provider_district} → "
            f"{order.recipient_district} | commission {order.commission} "
            f"({order.commission_mode}) | delivery {order.scheduled_delivery_date}"
        )
        log_data_quality_issues(order)
        return order

    def apply_cutoff(self, requested: date, local_now: datetime) -> date:
        """
        Late orders for today (or earlier) move to tomorrow.

        A past requested date also lands on tomorrow, never on
        requested + 1: a date that already went by cannot be served.
        """
        today = local_now.date()
        if local_now.hour >= self.cutoff_hour and requested <= today:
            return today + timedelta(days=1)
        return requested

    def route_for(self, leg: str, district: Optional[str]):
        """(route_name, pending_reason) for a leg still awaiting a driver."""
        group = self.zone_map.zone_group_for(district)
        if group:
            return group, None
        return LEG_PLACEHOLDERS[leg], MANUAL_ASSIGNMENT_REASON

    def _unique_order_id(self, now: datetime) -> str:
        try:
            for _ in range(MAX_ID_ATTEMPTS):
                order_id = generate_order_id(now, self.rng)
                if not Order.objects.filter(pk=order_id).exists():
                    return order_id
        except DatabaseError as e:
            raise TransientStoreError(str(e)) from e
        raise TransientStoreError("No se pudo generar un ID de pedido único")

    # ------------------------------------------
    # Edit
    # ------------------------------------------

    def update(self, order_id: str, data: Dict[str, Any]) -> Order:
        """
        Edit an open order. Closed orders must be reopened first.

        Addresses are geocoded before the row lock is taken.
        """
        try:
            current = Order.objects.filter(pk=order_id).first()
        except DatabaseError as e:
            raise TransientStoreError(str(e)) from e
        if current is None:
            raise NotFoundError(f"Pedido {order_id} no existe")
        self._check_open(current)
        resolved = self._geocode_addresses({**self.form_values(current), **data})

        try:
            with transaction.atomic():
                try:
                    order = Order.objects.select_for_update().get(pk=order_id)
                except Order.DoesNotExist:
                    raise NotFoundError(f"Pedido {order_id} no existe")
                self._check_open(order)

                merged = {**self.form_values(order), **data}
                if 'commission_override' not in data and order.commission_mode == CommissionMode.MANUAL:
                    merged['commission_override'] = order.commission
                fields = self._derive_fields(merged, resolved)

                fields['payment_status'] = parse_choice(
                    'payment_status', merged.get('payment_status'), PaymentStatus,
                    default=PaymentStatus.PENDING)
                fields['wallet_used'] = parse_choice(
                    'wallet_used', merged.get('wallet_used'), Wallet, default='')
                for name in EDITABLE_DATE_FIELDS:
                    if name in data:
                        fields[name] = parse_moment(name, data[name])

                for name, value in fields.items():
                    setattr(order, name, value)
                for leg in (Leg.PICKUP, Leg.DELIVERY):
                    self._apply_leg_update(order, leg, data)

                order.save()
        except DatabaseError as e:
            logger.error(f"[ORDERS] Failed to update order {order_id}: {e}")
            raise TransientStoreError(str(e)) from e

        logger.info(
            f"[ORDERS] Updated {order.id} | commission {order.commission} "
            f"({order.commission_mode}) | total {order.total_charged}"
        )
        log_data_quality_issues(order)
        return order

    @staticmethod
    def _check_open(order: Order):
        if order.is_closed:
            raise OrderValidationError('order_id', "Pedido cerrado, reabrir antes de modificar")

    def _geocode_addresses(self, data: Dict[str, Any]) -> Dict[str, Any]:
        resolved = {}
        for field in ('provider_address', 'recipient_address'):
            address = str(data.get(field) or '').strip()
            if address and address not in resolved:
                resolved[address] = self.geocoder.resolve(address)
        return resolved

    @staticmethod
    def form_values(order: Order) -> Dict[str, Any]:
        """Current order as form input, used as the base of an edit."""
        return {
            'provider_id': order.provider_id,
            'provider_name': order.provider_name,
            'provider_email': order.provider_email,
            'provider_phone': order.provider_phone,
            'provider_address': order.provider_address,
            'provider_district': order.provider_district,
            'recipient_name': order.recipient_name,
            'recipient_phone': order.recipient_phone,
            'recipient_address': order.recipient_address,
            'recipient_district': order.recipient_district,
            'package_description': order.package_description,
            'observations': order.observations,
            'package_height': order.package_height,
            'package_width': order.package_width,
            'package_length': order.package_length,
            'is_oversized': order.is_oversized,
            'is_charged': order.is_charged,
            'payment_method': order.payment_method,
            'amount_to_collect': order.total_charged if order.is_charged else None,
            'scheduled_delivery_date': order.scheduled_delivery_date,
            'payment_status': order.payment_status,
            'wallet_used': order.wallet_used,
        }

    def _apply_leg_update(self, order: Order, leg: str, data: Dict[str, Any]):
        supplied = {name: data[f'{leg}_{name}'] for name in LEG_FIELDS if f'{leg}_{name}' in data}

        if 'state' in supplied:
            setattr(order, f'{leg}_state',
                    parse_choice(f'{leg}_state', supplied['state'], AssignmentState,
                                 default=AssignmentState.PENDING))
        if 'driver' in supplied:
            setattr(order, f'{leg}_driver', self._resolve_user(f'{leg}_driver', supplied['driver']))
        if 'assigned_at' in supplied:
            setattr(order, f'{leg}_assigned_at', parse_moment(f'{leg}_assigned_at', supplied['assigned_at']))
        for name in ('route_id', 'driver_name', 'route_name', 'pending_reason'):
            if name in supplied:
                setattr(order, f'{leg}_{name}', supplied[name] or None)

        unassigned = (
            getattr(order, f'{leg}_state') == AssignmentState.PENDING
            and getattr(order, f'{leg}_driver_id') is None
        )
        if unassigned and 'route_name' not in supplied:
            district = order.provider_district if leg == Leg.PICKUP else order.recipient_district
            route_name, reason = self.route_for(leg, district)
            setattr(order, f'{leg}_route_name', route_name)
            if 'pending_reason' not in supplied:
                setattr(order, f'{leg}_pending_reason', reason)

    # ------------------------------------------
    # Shared derivation
    # ------------------------------------------

    def _derive_fields(self, data: Dict[str, Any],
                       resolved: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        for field in REQUIRED_FIELDS:
            if _is_blank(data.get(field)):
                raise OrderValidationError(field, "Campo requerido")

        is_charged = parse_flag('is_charged', data.get('is_charged'), required=True)
        is_oversized = parse_flag('is_oversized', data.get('is_oversized'))

        payment_method = parse_choice('payment_method', data.get('payment_method'), PaymentMethod)
        amount = parse_amount('amount_to_collect', data.get('amount_to_collect'))
        if is_charged:
            if payment_method is None:
                raise OrderValidationError('payment_method', "Campo requerido si se cobra")
            if amount is None or amount <= 0:
                raise OrderValidationError('amount_to_collect', "Debe ser un monto positivo")
        total = amount if is_charged else Decimal('0')

        recipient_district = str(data['recipient_district']).strip()
        provider_district = str(data['provider_district']).strip()

        override = parse_amount('commission_override', data.get('commission_override'))
        policy = ManualCommission(override) if override is not None else AutoCommission()
        try:
            commission = self.pricing.resolve_commission(policy, recipient_district, is_oversized)
        except ValueError as e:
            raise OrderValidationError('commission_override', str(e))
        breakdown = self.pricing.compute_payment_breakdown(total, commission)

        height = parse_dimension('package_height', data.get('package_height'))
        width = parse_dimension('package_width', data.get('package_width'))
        length = parse_dimension('package_length', data.get('package_length'))

        provider_address = str(data['provider_address']).strip()
        recipient_address = str(data['recipient_address']).strip()
        resolved = resolved or {}
        provider_coords = resolved.get(provider_address) or self.geocoder.resolve(provider_address)
        recipient_coords = resolved.get(recipient_address) or self.geocoder.resolve(recipient_address)

        return {
            'provider': self._resolve_user('provider_id', data.get('provider_id')),
            'provider_name': clean_string(data['provider_name']).upper(),
            'provider_email': (data.get('provider_email') or '').strip(),
            'provider_phone': clean_phone(data['provider_phone']),
            'provider_address': provider_address,
            'provider_district': provider_district,
            'provider_latitude': provider_coords.latitude,
            'provider_longitude': provider_coords.longitude,
            'recipient_name': capitalize_name(clean_string(data['recipient_name'])),
            'recipient_phone': clean_phone(data['recipient_phone']),
            'recipient_address': recipient_address,
            'recipient_district': recipient_district,
            'recipient_latitude': recipient_coords.latitude,
            'recipient_longitude': recipient_coords.longitude,
            'package_description': capitalize_name(data['package_description']),
            'observations': data.get('observations') or '',
            'package_height': height,
            'package_width': width,
            'package_length': length,
            'package_volume': compute_volume(height, width, length),
            'is_oversized': is_oversized,
            'is_charged': is_charged,
            'payment_method': payment_method or PaymentMethod.ASK_CUSTOMER,
            'commission': breakdown.commission,
            'commission_mode': (
                CommissionMode.MANUAL if isinstance(policy, ManualCommission) else CommissionMode.AUTO
            ),
            'provider_payout': breakdown.provider_payout,
            'total_charged': breakdown.total_charged,
            'scheduled_delivery_date': parse_delivery_date(
                'scheduled_delivery_date', data['scheduled_delivery_date']),
        }

    @staticmethod
    def _resolve_user(field: str, user_id):
        if _is_blank(user_id):
            return None
        User = get_user_model()
        try:
            return User.objects.get(pk=user_id)
        except (User.DoesNotExist, ValueError, TypeError):
            raise OrderValidationError(field, f"Usuario {user_id} no existe")
        except DatabaseError as e:
            raise TransientStoreError(str(e)) from e


# ============================================
# BOUNDARY
# ============================================

def build_order(data: Dict[str, Any], builder: Optional[OrderRecordBuilder] = None) -> OrderResult:
    builder = builder or OrderRecordBuilder()
    try:
        order = builder.build(data)
    except OrderValidationError as e:
        logger.warning(f"[ORDERS] Rejected new order: {e}")
        return OrderResult(success=False, message=e.message,
                           error=OrderResult.ERROR_VALIDATION, field=e.field)
    except TransientStoreError:
        return OrderResult(success=False, message='Error al crear el pedido',
                           error=OrderResult.ERROR_STORE)
    return OrderResult(success=True, order_id=order.id, message='Pedido creado exitosamente')


def update_order(order_id: str, data: Dict[str, Any],
                 builder: Optional[OrderRecordBuilder] = None) -> OrderResult:
    builder = builder or OrderRecordBuilder()
    try:
        order = builder.update(order_id, data)
    except OrderValidationError as e:
        logger.warning(f"[ORDERS] Rejected update of {order_id}: {e}")
        return OrderResult(success=False, order_id=order_id, message=e.message,
                           error=OrderResult.ERROR_VALIDATION, field=e.field)
    except NotFoundError as e:
        return OrderResult(success=False, order_id=order_id, message=str(e),
                           error=OrderResult.ERROR_NOT_FOUND)
    except TransientStoreError:
        return OrderResult(success=False, order_id=order_id, message='Error al actualizar el pedido',
                           error=OrderResult.ERROR_STORE)
    return OrderResult(success=True, order_id=order.id, message='Pedido actualizado exitosamente')
