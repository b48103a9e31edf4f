import django.db.models.deletion
import django.utils.timezone
from django.conf import settings
from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
    ]

    operations = [
        migrations.CreateModel(
            name='Order',
            fields=[
                ('id', models.CharField(editable=False, max_length=32, primary_key=True, serialize=False)),
                ('provider_name', models.CharField(max_length=150, verbose_name='Nombre proveedor')),
                ('provider_email', models.CharField(blank=True, max_length=254, verbose_name='Correo proveedor')),
                ('provider_phone', models.CharField(max_length=15, verbose_name='Teléfono proveedor')),
                ('provider_address', models.TextField(verbose_name='Dirección / link proveedor')),
                ('provider_district', models.CharField(max_length=100, verbose_name='Distrito recojo')),
                ('provider_latitude', models.FloatField(blank=True, null=True)),
                ('provider_longitude', models.FloatField(blank=True, null=True)),
                ('recipient_name', models.CharField(max_length=150, verbose_name='Nombre destinatario')),
                ('recipient_phone', models.CharField(max_length=15, verbose_name='Teléfono destinatario')),
                ('recipient_address', models.TextField(verbose_name='Dirección / link destinatario')),
                ('recipient_district', models.CharField(max_length=100, verbose_name='Distrito entrega')),
                ('recipient_latitude', models.FloatField(blank=True, null=True)),
                ('recipient_longitude', models.FloatField(blank=True, null=True)),
                ('package_description', models.TextField(verbose_name='Detalle del envío')),
                ('observations', models.TextField(blank=True, verbose_name='Observaciones')),
                ('package_height', models.FloatField(blank=True, null=True, verbose_name='Alto (cm)')),
                ('package_width', models.FloatField(blank=True, null=True, verbose_name='Ancho (cm)')),
                ('package_length', models.FloatField(blank=True, null=True, verbose_name='Largo (cm)')),
                ('package_volume', models.FloatField(blank=True, null=True, verbose_name='Volumen (cm³)')),
                ('is_oversized', models.BooleanField(default=False, verbose_name='Paquete grande')),
                ('pickup_photo_url', models.URLField(blank=True, verbose_name='Foto recojo')),
                ('delivery_photo_url', models.URLField(blank=True, verbose_name='Foto entrega')),
                ('payment_proof_url', models.URLField(blank=True, verbose_name='Comprobante de pago')),
                ('is_charged', models.BooleanField(default=False, verbose_name='Se cobra')),
                ('payment_method', models.CharField(choices=[('yape', 'Yape'), ('plin', 'Plin'), ('efectivo', 'Efectivo'), ('link', 'Link de pago'), ('transferencia', 'Transferencia bancaria'), ('preguntar', 'Preguntar al cliente')], default='preguntar', max_length=20, verbose_name='Método de pago')),
                ('provider_payout', models.IntegerField(default=0, verbose_name='Monto a devolver')),
                ('commission', models.PositiveIntegerField(default=0, verbose_name='Comisión')),
                ('commission_mode', models.CharField(choices=[('auto', 'Automática'), ('manual', 'Manual')], default='auto', max_length=10, verbose_name='Tipo de comisión')),
                ('total_charged', models.IntegerField(default=0, verbose_name='Monto total')),
                ('payment_status', models.CharField(choices=[('pendiente', 'Pendiente'), ('pagado', 'Pagado')], default='pendiente', max_length=10, verbose_name='Estado de pago')),
                ('wallet_used', models.CharField(blank=True, choices=[('yape', 'Yape'), ('plin', 'Plin')], max_length=10, verbose_name='Billetera usada')),
                ('pickup_state', models.CharField(choices=[('pendiente', 'Pendiente'), ('asignado', 'Asignado'), ('en_camino', 'En camino'), ('completada', 'Completada')], default='pendiente', max_length=20, verbose_name='Estado recojo')),
                ('pickup_route_id', models.CharField(blank=True, max_length=64, null=True)),
                ('pickup_route_name', models.CharField(blank=True, max_length=64, null=True, verbose_name='Ruta recojo')),
                ('pickup_driver_name', models.CharField(blank=True, max_length=200, null=True)),
                ('pickup_assigned_at', models.DateTimeField(blank=True, null=True)),
                ('pickup_pending_reason', models.CharField(blank=True, max_length=200, null=True)),
                ('delivery_state', models.CharField(choices=[('pendiente', 'Pendiente'), ('asignado', 'Asignado'), ('en_camino', 'En camino'), ('completada', 'Completada')], default='pendiente', max_length=20, verbose_name='Estado entrega')),
                ('delivery_route_id', models.CharField(blank=True, max_length=64, null=True)),
                ('delivery_route_name', models.CharField(blank=True, max_length=64, null=True, verbose_name='Ruta entrega')),
                ('delivery_driver_name', models.CharField(blank=True, max_length=200, null=True)),
                ('delivery_assigned_at', models.DateTimeField(blank=True, null=True)),
                ('delivery_pending_reason', models.CharField(blank=True, max_length=200, null=True)),
                ('created_at', models.DateTimeField(default=django.utils.timezone.now, verbose_name='Creación')),
                ('scheduled_delivery_date', models.DateField(verbose_name='Entrega programada')),
                ('picked_up_at', models.DateTimeField(blank=True, null=True, verbose_name='Recojo')),
                ('delivered_at', models.DateTimeField(blank=True, null=True, verbose_name='Entrega')),
                ('cancelled_at', models.DateTimeField(blank=True, null=True, verbose_name='Anulación')),
                ('updated_at', models.DateTimeField(auto_now=True)),
                ('is_closed', models.BooleanField(default=False, verbose_name='Cerrado por admin')),
                ('closed_at', models.DateTimeField(blank=True, null=True, verbose_name='Fecha de cierre')),
                ('allows_early_delivery', models.BooleanField(default=True, help_text='Creado antes de la hora de corte', verbose_name='Permite entrega antes de 13h')),
                ('visible_to_pickup_driver', models.BooleanField(default=False)),
                ('visible_to_delivery_driver', models.BooleanField(default=False)),
                ('visible_to_admin', models.BooleanField(default=True)),
                ('version', models.PositiveIntegerField(default=1)),
                ('delivery_driver', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='delivery_orders', to=settings.AUTH_USER_MODEL, verbose_name='Motorizado entrega')),
                ('pickup_driver', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='pickup_orders', to=settings.AUTH_USER_MODEL, verbose_name='Motorizado recojo')),
                ('provider', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='provided_orders', to=settings.AUTH_USER_MODEL, verbose_name='Cliente (proveedor)')),
            ],
            options={
                'verbose_name': 'Pedido',
                'verbose_name_plural': 'Pedidos',
                'ordering': ['-created_at'],
                'indexes': [
                    models.Index(fields=['is_closed', 'created_at'], name='order_closed_created_idx'),
                    models.Index(fields=['delivered_at'], name='order_delivered_idx'),
                    models.Index(fields=['cancelled_at'], name='order_cancelled_idx'),
                ],
            },
        ),
    ]
