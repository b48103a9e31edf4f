"""
Django management command to close the finished-orders backlog.

Usage:
    python manage.py close_finished_orders
    python manage.py close_finished_orders --dry-run
"""
from django.core.management.base import BaseCommand, CommandError

from logistics.exceptions import OrderError
from logistics.services.closure import (
    build_closing_summary,
    close_orders,
    get_closure_candidates,
)


class Command(BaseCommand):
    help = 'Close every delivered or cancelled order that is not closed yet'

    def add_arguments(self, parser):
        parser.add_argument(
            '--dry-run',
            action='store_true',
            help='List the candidates without closing them',
        )

    def handle(self, *args, **options):
        candidates = list(get_closure_candidates())
        summary = build_closing_summary(candidates)

        for order in candidates:
            self.stdout.write(f'  {order.id}  {order.provider_name} → {order.recipient_name}  S/ {order.total_charged}')

        self.stdout.write(
            f'Pedidos por cerrar: {summary.orders} | '
            f'Monto total: S/ {summary.total_charged} | Comisión: S/ {summary.commission}'
        )

        if options['dry_run'] or not candidates:
            return

        try:
            changed = close_orders([order.id for order in candidates])
        except OrderError as e:
            raise CommandError(f'Cierre cancelado: {e}')

        self.stdout.write(self.style.SUCCESS(f'Cierre completado: {changed} pedidos cerrados'))
