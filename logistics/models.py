"""
LOGISTICS App - Orders for the courier dashboard

Handles: Orders (pedidos), their pickup/delivery assignment legs,
payment breakdown and the admin closing cycle.
"""

from dataclasses import dataclass
from typing import Optional

from django.conf import settings
from django.db import models
from django.utils import timezone


class AssignmentState(models.TextChoices):
    """State of one assignment leg (pickup or delivery)."""
    PENDING = 'pendiente', 'Pendiente'
    ASSIGNED = 'asignado', 'Asignado'
    EN_ROUTE = 'en_camino', 'En camino'
    COMPLETED = 'completada', 'Completada'


class Leg(models.TextChoices):
    PICKUP = 'pickup', 'Recojo'
    DELIVERY = 'delivery', 'Entrega'


class OrderStatus(models.TextChoices):
    """Derived order status. Never stored, see logistics.services.lifecycle."""
    PENDING = 'pending', 'Pendiente'
    IN_PROGRESS = 'in-progress', 'En curso'
    DELIVERED = 'delivered', 'Entregado'
    CANCELLED = 'cancelled', 'Cancelado'


class PaymentMethod(models.TextChoices):
    """Payment method enumeration."""
    YAPE = 'yape', 'Yape'
    PLIN = 'plin', 'Plin'
    CASH = 'efectivo', 'Efectivo'
    PAYMENT_LINK = 'link', 'Link de pago'
    BANK_TRANSFER = 'transferencia', 'Transferencia bancaria'
    ASK_CUSTOMER = 'preguntar', 'Preguntar al cliente'


class Wallet(models.TextChoices):
    YAPE = 'yape', 'Yape'
    PLIN = 'plin', 'Plin'


class PaymentStatus(models.TextChoices):
    PENDING = 'pendiente', 'Pendiente'
    PAID = 'pagado', 'Pagado'


class CommissionMode(models.TextChoices):
    AUTO = 'auto', 'Automática'
    MANUAL = 'manual', 'Manual'


PICKUP_PLACEHOLDER_ROUTE = 'Asignar Recojo'
DELIVERY_PLACEHOLDER_ROUTE = 'Asignar Entrega'
MANUAL_ASSIGNMENT_REASON = 'Pendiente de asignación manual'


@dataclass(frozen=True)
class AssignmentView:
    """Read-only view over one leg's columns."""
    leg: str
    state: str
    route_id: Optional[str]
    route_name: Optional[str]
    driver_id: Optional[str]
    driver_name: Optional[str]
    assigned_at: Optional[object]
    pending_reason: Optional[str]


class Order(models.Model):
    """
    A delivery request from a provider (sender) to a recipient.

    Key Business Logic:
    - id is DD-MM-YYYY-HHMMSS-RRRRRR, generated by the order builder
    - status is derived on every read from the date fields and leg states
    - is_closed / closed_at are written only by the closure reconciler
    - total_charged = provider_payout + commission (whole currency units)
    """

    id = models.CharField(max_length=32, primary_key=True, editable=False)

    # Provider (sender)
    provider = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='provided_orders',
        verbose_name="Cliente (proveedor)"
    )
    provider_name = models.CharField(max_length=150, verbose_name="Nombre proveedor")
    provider_email = models.CharField(max_length=254, blank=True, verbose_name="Correo proveedor")
    provider_phone = models.CharField(max_length=15, verbose_name="Teléfono proveedor")
    provider_address = models.TextField(verbose_name="Dirección / link proveedor")
    provider_district = models.CharField(max_length=100, verbose_name="Distrito recojo")
    provider_latitude = models.FloatField(null=True, blank=True)
    provider_longitude = models.FloatField(null=True, blank=True)

    # Recipient
    recipient_name = models.CharField(max_length=150, verbose_name="Nombre destinatario")
    recipient_phone = models.CharField(max_length=15, verbose_name="Teléfono destinatario")
    recipient_address = models.TextField(verbose_name="Dirección / link destinatario")
    recipient_district = models.CharField(max_length=100, verbose_name="Distrito entrega")
    recipient_latitude = models.FloatField(null=True, blank=True)
    recipient_longitude = models.FloatField(null=True, blank=True)

    # Package
    package_description = models.TextField(verbose_name="Detalle del envío")
    observations = models.TextField(blank=True, verbose_name="Observaciones")
    package_height = models.FloatField(null=True, blank=True, verbose_name="Alto (cm)")
    package_width = models.FloatField(null=True, blank=True, verbose_name="Ancho (cm)")
    package_length = models.FloatField(null=True, blank=True, verbose_name="Largo (cm)")
    package_volume = models.FloatField(null=True, blank=True, verbose_name="Volumen (cm³)")
    is_oversized = models.BooleanField(default=False, verbose_name="Paquete grande")
    pickup_photo_url = models.URLField(blank=True, verbose_name="Foto recojo")
    delivery_photo_url = models.URLField(blank=True, verbose_name="Foto entrega")
    payment_proof_url = models.URLField(blank=True, verbose_name="Comprobante de pago")

    # Payment (whole currency units, S/)
    is_charged = models.BooleanField(default=False, verbose_name="Se cobra")
    payment_method = models.CharField(
        max_length=20,
        choices=PaymentMethod.choices,
        default=PaymentMethod.ASK_CUSTOMER,
        verbose_name="Método de pago"
    )
    provider_payout = models.IntegerField(default=0, verbose_name="Monto a devolver")
    commission = models.PositiveIntegerField(default=0, verbose_name="Comisión")
    commission_mode = models.CharField(
        max_length=10,
        choices=CommissionMode.choices,
        default=CommissionMode.AUTO,
        verbose_name="Tipo de comisión"
    )
    total_charged = models.IntegerField(default=0, verbose_name="Monto total")
    payment_status = models.CharField(
        max_length=10,
        choices=PaymentStatus.choices,
        default=PaymentStatus.PENDING,
        verbose_name="Estado de pago"
    )
    wallet_used = models.CharField(
        max_length=10,
        choices=Wallet.choices,
        blank=True,
        verbose_name="Billetera usada"
    )

    # Pickup assignment leg
    pickup_state = models.CharField(
        max_length=20,
        choices=AssignmentState.choices,
        default=AssignmentState.PENDING,
        verbose_name="Estado recojo"
    )
    pickup_route_id = models.CharField(max_length=64, blank=True, null=True)
    pickup_route_name = models.CharField(max_length=64, blank=True, null=True, verbose_name="Ruta recojo")
    pickup_driver = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='pickup_orders',
        verbose_name="Motorizado recojo"
    )
    pickup_driver_name = models.CharField(max_length=200, blank=True, null=True)
    pickup_assigned_at = models.DateTimeField(null=True, blank=True)
    pickup_pending_reason = models.CharField(max_length=200, blank=True, null=True)

    # Delivery assignment leg
    delivery_state = models.CharField(
        max_length=20,
        choices=AssignmentState.choices,
        default=AssignmentState.PENDING,
        verbose_name="Estado entrega"
    )
    delivery_route_id = models.CharField(max_length=64, blank=True, null=True)
    delivery_route_name = models.CharField(max_length=64, blank=True, null=True, verbose_name="Ruta entrega")
    delivery_driver = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='delivery_orders',
        verbose_name="Motorizado entrega"
    )
    delivery_driver_name = models.CharField(max_length=200, blank=True, null=True)
    delivery_assigned_at = models.DateTimeField(null=True, blank=True)
    delivery_pending_reason = models.CharField(max_length=200, blank=True, null=True)

    # Dates
    created_at = models.DateTimeField(default=timezone.now, verbose_name="Creación")
    scheduled_delivery_date = models.DateField(verbose_name="Entrega programada")
    picked_up_at = models.DateTimeField(null=True, blank=True, verbose_name="Recojo")
    delivered_at = models.DateTimeField(null=True, blank=True, verbose_name="Entrega")
    cancelled_at = models.DateTimeField(null=True, blank=True, verbose_name="Anulación")
    updated_at = models.DateTimeField(auto_now=True)

    # Operational cycle
    is_closed = models.BooleanField(default=False, verbose_name="Cerrado por admin")
    closed_at = models.DateTimeField(null=True, blank=True, verbose_name="Fecha de cierre")
    allows_early_delivery = models.BooleanField(
        default=True,
        verbose_name="Permite entrega antes de 13h",
        help_text="Creado antes de la hora de corte"
    )

    # Visibility (consumed by the dashboard UI)
    visible_to_pickup_driver = models.BooleanField(default=False)
    visible_to_delivery_driver = models.BooleanField(default=False)
    visible_to_admin = models.BooleanField(default=True)

    # Written at creation, not used for concurrency control
    version = models.PositiveIntegerField(default=1)

    class Meta:
        verbose_name = "Pedido"
        verbose_name_plural = "Pedidos"
        ordering = ['-created_at']
        indexes = [
            models.Index(fields=['is_closed', 'created_at'], name='order_closed_created_idx'),
            models.Index(fields=['delivered_at'], name='order_delivered_idx'),
            models.Index(fields=['cancelled_at'], name='order_cancelled_idx'),
        ]

    def __str__(self):
        return f"Pedido {self.id} - {self.recipient_name}"

    def assignment(self, leg: str) -> AssignmentView:
        prefix = 'pickup' if leg == Leg.PICKUP else 'delivery'
        return AssignmentView(
            leg=leg,
            state=getattr(self, f'{prefix}_state'),
            route_id=getattr(self, f'{prefix}_route_id'),
            route_name=getattr(self, f'{prefix}_route_name'),
            driver_id=getattr(self, f'{prefix}_driver_id'),
            driver_name=getattr(self, f'{prefix}_driver_name'),
            assigned_at=getattr(self, f'{prefix}_assigned_at'),
            pending_reason=getattr(self, f'{prefix}_pending_reason'),
        )

    @property
    def requires_manual_assignment(self) -> bool:
        return (
            self.pickup_route_name == PICKUP_PLACEHOLDER_ROUTE
            or self.delivery_route_name == DELIVERY_PLACEHOLDER_ROUTE
        )

    @property
    def driver_display_name(self) -> str:
        return self.delivery_driver_name or self.pickup_driver_name or 'Sin Asignar'

    @property
    def dimensions_display(self) -> str:
        if self.package_length and self.package_width and self.package_height:
            return f"{self.package_length:g}x{self.package_width:g}x{self.package_height:g}cm"
        return '-'
