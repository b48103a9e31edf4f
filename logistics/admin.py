"""
Django Admin configuration for LOGISTICS app.
"""

from django.contrib import admin, messages

from .exceptions import OrderError
from .models import Order
from .services.closure import close_orders, reopen_orders
from .services.lifecycle import classify


@admin.register(Order)
class OrderAdmin(admin.ModelAdmin):
    """Admin for Order with closing actions."""

    list_display = (
        'id',
        'derived_status',
        'provider_name',
        'recipient_name',
        'recipient_district',
        'total_charged',
        'commission',
        'provider_payout',
        'is_closed',
        'created_at',
    )
    list_filter = ('is_closed', 'is_charged', 'payment_method', 'commission_mode', 'recipient_district')
    search_fields = ('id', 'provider_name', 'recipient_name', 'recipient_phone')
    readonly_fields = (
        'id',
        'created_at',
        'updated_at',
        'is_closed',
        'closed_at',
        'version',
    )

    fieldsets = (
        ('Identificación', {
            'fields': ('id', 'version')
        }),
        ('Proveedor', {
            'fields': (
                'provider', 'provider_name', 'provider_email', 'provider_phone',
                'provider_address', 'provider_district', 'provider_latitude', 'provider_longitude'
            )
        }),
        ('Destinatario', {
            'fields': (
                'recipient_name', 'recipient_phone', 'recipient_address', 'recipient_district',
                'recipient_latitude', 'recipient_longitude'
            )
        }),
        ('Paquete', {
            'fields': (
                'package_description', 'observations',
                'package_height', 'package_width', 'package_length', 'package_volume', 'is_oversized'
            )
        }),
        ('Pago', {
            'fields': (
                'is_charged', 'payment_method', 'total_charged', 'commission', 'commission_mode',
                'provider_payout', 'payment_status', 'wallet_used'
            )
        }),
        ('Recojo', {
            'fields': ('pickup_state', 'pickup_route_name', 'pickup_driver', 'pickup_driver_name',
                       'pickup_assigned_at', 'pickup_pending_reason'),
            'classes': ('collapse',)
        }),
        ('Entrega', {
            'fields': ('delivery_state', 'delivery_route_name', 'delivery_driver', 'delivery_driver_name',
                       'delivery_assigned_at', 'delivery_pending_reason'),
            'classes': ('collapse',)
        }),
        ('Fechas', {
            'fields': ('created_at', 'scheduled_delivery_date', 'picked_up_at',
                       'delivered_at', 'cancelled_at', 'updated_at')
        }),
        ('Cierre', {
            'fields': ('is_closed', 'closed_at', 'allows_early_delivery')
        }),
    )

    def derived_status(self, obj):
        return classify(obj).label
    derived_status.short_description = "Estado"

    # Closing actions
    actions = ['close_selected', 'reopen_selected', 'export_orders_csv']

    @admin.action(description="Cerrar pedidos seleccionados")
    def close_selected(self, request, queryset):
        try:
            changed = close_orders(queryset.values_list('pk', flat=True))
        except OrderError as e:
            self.message_user(request, f"Cierre cancelado: {e}", level=messages.ERROR)
            return
        self.message_user(request, f"{changed} pedido(s) cerrado(s).")

    @admin.action(description="Reabrir pedidos seleccionados")
    def reopen_selected(self, request, queryset):
        try:
            changed = reopen_orders(queryset.values_list('pk', flat=True))
        except OrderError as e:
            self.message_user(request, f"Reapertura cancelada: {e}", level=messages.ERROR)
            return
        self.message_user(request, f"{changed} pedido(s) reabierto(s).")

    @admin.action(description="Exportar en CSV")
    def export_orders_csv(self, request, queryset):
        import csv
        from django.http import HttpResponse

        response = HttpResponse(content_type='text/csv')
        response['Content-Disposition'] = 'attachment; filename="pedidos.csv"'
        response.write('\ufeff')

        writer = csv.writer(response)
        writer.writerow([
            'ID', 'Estado', 'Proveedor', 'Destinatario', 'Distrito entrega',
            'Monto total', 'Comisión', 'Monto a devolver', 'Cerrado', 'Creado el'
        ])

        for order in queryset:
            writer.writerow([
                order.id,
                classify(order).label,
                order.provider_name,
                order.recipient_name,
                order.recipient_district,
                f"S/ {order.total_charged}",
                f"S/ {order.commission}",
                f"S/ {order.provider_payout}",
                'Sí' if order.is_closed else 'No',
                order.created_at.strftime('%d/%m/%Y %H:%M') if order.created_at else '',
            ])
        return response
