"""
Order Record Builder tests
"""

import re
from datetime import date
from unittest.mock import patch

from django.db import DatabaseError
from django.test import SimpleTestCase, TestCase

from core.models import UserRole
from logistics.models import (
    DELIVERY_PLACEHOLDER_ROUTE,
    MANUAL_ASSIGNMENT_REASON,
    PICKUP_PLACEHOLDER_ROUTE,
    AssignmentState,
    CommissionMode,
    Order,
    OrderStatus,
    PaymentMethod,
)
from logistics.services.lifecycle import classify
from logistics.services.order_builder import (
    INVALID_PHONE_SENTINEL,
    OrderRecordBuilder,
    OrderResult,
    build_order,
    capitalize_name,
    clean_phone,
    clean_string,
    compute_volume,
    generate_order_id,
    update_order,
)

from .factories import (
    FakeGeocoder,
    SequenceRandom,
    create_driver,
    create_order,
    create_user,
    fixed_clock,
    local_datetime,
    order_form,
)

ORDER_ID_PATTERN = re.compile(r'^\d{2}-\d{2}-\d{4}-\d{6}-\d{6}$')


class TestNormalisation(SimpleTestCase):

    def test_phone_with_country_code_and_separators(self):
        self.assertEqual(clean_phone('+51 987-654-321'), '987654321')

    def test_local_number_starting_with_country_code_is_kept(self):
        self.assertEqual(clean_phone('512345678'), '512345678')
        self.assertEqual(clean_phone('51512345678'), '512345678')

    def test_phone_with_non_printable_characters(self):
        self.assertEqual(clean_phone('‪987654321‬'), '987654321')

    def test_invalid_phone_becomes_sentinel(self):
        for value in ('12345', 'abc', '', None, '98765432100'):
            self.assertEqual(clean_phone(value), INVALID_PHONE_SENTINEL)

    def test_clean_string_keeps_letters_and_spaces(self):
        self.assertEqual(clean_string('Tienda #1, S.A.C.'), 'Tienda  SAC')
        self.assertEqual(clean_string('Peña Ñuñez'), 'Peña Ñuñez')

    def test_capitalize_name(self):
        self.assertEqual(capitalize_name('juan  PÉREZ'), 'Juan Pérez')
        self.assertEqual(capitalize_name('dr. luis, gomez'), 'Dr Luis Gomez')
        self.assertEqual(capitalize_name(None), '')

    def test_volume(self):
        self.assertEqual(compute_volume(10.0, 20.0, 30.0), 6000.0)
        self.assertIsNone(compute_volume(10.0, None, 30.0))
        self.assertIsNone(compute_volume(10.0, 0.0, 30.0))
        self.assertIsNone(compute_volume(10.0, -2.0, 30.0))

    def test_order_id_format(self):
        moment = local_datetime(2024, 3, 5, 9, 7, 3)
        order_id = generate_order_id(moment, SequenceRandom(123456))
        self.assertEqual(order_id, '05-03-2024-090703-123456')
        self.assertRegex(order_id, ORDER_ID_PATTERN)


class OrderBuilderTestCase(TestCase):

    def setUp(self):
        self.geocoder = FakeGeocoder()

    def _builder(self, moment=None, rng=None):
        return OrderRecordBuilder(
            geocoder=self.geocoder,
            clock=fixed_clock(moment or local_datetime(2024, 3, 15, 10, 0)),
            rng=rng,
        )

    def _build(self, moment=None, **overrides):
        result = build_order(order_form(**overrides), builder=self._builder(moment))
        self.assertTrue(result.success, result.message)
        return Order.objects.get(pk=result.order_id)


class TestBuildOrder(OrderBuilderTestCase):

    def test_carabayllo_oversized_charged_scenario(self):
        order = self._build(is_oversized=True, amount_to_collect='50')

        self.assertEqual(order.commission, 20)
        self.assertEqual(order.provider_payout, 30)
        self.assertEqual(order.total_charged, 50)
        self.assertEqual(order.commission_mode, CommissionMode.AUTO)
        self.assertEqual(classify(order), OrderStatus.PENDING)
        self.assertEqual(order.delivery_route_name, 'NOR')
        self.assertIsNone(order.delivery_pending_reason)

    def test_new_order_state(self):
        order = self._build()

        self.assertRegex(order.id, ORDER_ID_PATTERN)
        self.assertTrue(order.id.startswith('15-03-2024-100000-'))
        self.assertEqual(order.pickup_state, AssignmentState.PENDING)
        self.assertEqual(order.delivery_state, AssignmentState.PENDING)
        self.assertFalse(order.is_closed)
        self.assertIsNone(order.closed_at)
        self.assertEqual(order.version, 1)
        self.assertTrue(order.visible_to_admin)
        self.assertFalse(order.visible_to_pickup_driver)
        self.assertEqual(order.created_at, local_datetime(2024, 3, 15, 10, 0))

    def test_normalises_parties(self):
        order = self._build(
            provider_name='tienda xyz s.a.c.',
            provider_phone='+51 987 654 321',
            recipient_name='maria. LOPEZ, diaz',
            recipient_phone='12-34',
            package_description='zapatillas talla 42',
        )
        self.assertEqual(order.provider_name, 'TIENDA XYZ SAC')
        self.assertEqual(order.provider_phone, '987654321')
        self.assertEqual(order.recipient_name, 'Maria Lopez Diaz')
        self.assertEqual(order.recipient_phone, INVALID_PHONE_SENTINEL)
        self.assertEqual(order.package_description, 'Zapatillas Talla 42')

    def test_geocodes_both_addresses(self):
        order = self._build()
        self.assertEqual(self.geocoder.calls, ['Av. Universitaria 1234', 'Jr. Los Pinos 456'])
        self.assertEqual(order.recipient_latitude, self.geocoder.coordinates.latitude)

    def test_ungrouped_districts_get_placeholders(self):
        order = self._build(provider_district='Miraflores (Lima)', recipient_district='Desconocido')

        self.assertEqual(order.pickup_route_name, PICKUP_PLACEHOLDER_ROUTE)
        self.assertEqual(order.pickup_pending_reason, MANUAL_ASSIGNMENT_REASON)
        self.assertEqual(order.delivery_route_name, DELIVERY_PLACEHOLDER_ROUTE)
        self.assertEqual(order.delivery_pending_reason, MANUAL_ASSIGNMENT_REASON)
        self.assertTrue(order.requires_manual_assignment)
        self.assertEqual(order.commission, 10)

    def test_volume_and_oversized_are_independent(self):
        with self.assertLogs('logistics.services.lifecycle', level='WARNING') as logs:
            order = self._build(
                package_height='10', package_width='10', package_length='10', is_oversized='grande'
            )
        self.assertEqual(order.package_volume, 1000.0)
        self.assertTrue(order.is_oversized)
        self.assertIn('[DATA QUALITY]', logs.output[0])

    def test_commission_override(self):
        order = self._build(commission_override='7')
        self.assertEqual(order.commission, 7)
        self.assertEqual(order.commission_mode, CommissionMode.MANUAL)
        self.assertEqual(order.provider_payout, 43)

    def test_uncharged_order(self):
        order = self._build(is_charged='no', amount_to_collect='', payment_method='')
        self.assertFalse(order.is_charged)
        self.assertEqual(order.total_charged, 0)
        self.assertEqual(order.commission, 15)
        self.assertEqual(order.provider_payout, -15)
        self.assertEqual(order.payment_method, PaymentMethod.ASK_CUSTOMER)

    def test_amount_is_rounded(self):
        order = self._build(amount_to_collect='49.5')
        self.assertEqual(order.total_charged, 50)

    def test_provider_account_link(self):
        customer = create_user(UserRole.CUSTOMER, 'tienda@test.pe')
        order = self._build(provider_id=str(customer.pk))
        self.assertEqual(order.provider, customer)

    def test_id_collision_retries(self):
        create_order(id='15-03-2024-100000-111111')
        builder = self._builder(rng=SequenceRandom(111111, 222222))

        result = build_order(order_form(), builder=builder)

        self.assertEqual(result.order_id, '15-03-2024-100000-222222')

    def test_store_failure(self):
        with patch.object(Order, 'save', side_effect=DatabaseError('disk full')):
            result = build_order(order_form(), builder=self._builder())

        self.assertFalse(result.success)
        self.assertEqual(result.error, OrderResult.ERROR_STORE)
        self.assertFalse(Order.objects.exists())


class TestCutoffRule(OrderBuilderTestCase):

    def test_late_order_for_today_moves_to_tomorrow(self):
        order = self._build(
            moment=local_datetime(2024, 3, 15, 15, 0),
            scheduled_delivery_date='2024-03-15',
        )
        self.assertEqual(order.scheduled_delivery_date, date(2024, 3, 16))
        self.assertFalse(order.allows_early_delivery)

    def test_order_at_cutoff_hour_moves_to_tomorrow(self):
        order = self._build(
            moment=local_datetime(2024, 3, 15, 14, 0),
            scheduled_delivery_date='2024-03-15',
        )
        self.assertEqual(order.scheduled_delivery_date, date(2024, 3, 16))

    def test_late_order_for_past_date_moves_to_tomorrow(self):
        order = self._build(
            moment=local_datetime(2024, 3, 15, 18, 30),
            scheduled_delivery_date='2024-03-10',
        )
        self.assertEqual(order.scheduled_delivery_date, date(2024, 3, 16))

    def test_early_order_keeps_today(self):
        order = self._build(
            moment=local_datetime(2024, 3, 15, 13, 59),
            scheduled_delivery_date='2024-03-15',
        )
        self.assertEqual(order.scheduled_delivery_date, date(2024, 3, 15))
        self.assertTrue(order.allows_early_delivery)

    def test_late_order_for_future_date_is_unchanged(self):
        order = self._build(
            moment=local_datetime(2024, 3, 15, 16, 0),
            scheduled_delivery_date='2024-03-18',
        )
        self.assertEqual(order.scheduled_delivery_date, date(2024, 3, 18))


class TestBuildValidation(OrderBuilderTestCase):

    def _assert_rejected(self, field, **overrides):
        result = build_order(order_form(**overrides), builder=self._builder())
        self.assertFalse(result.success)
        self.assertEqual(result.error, OrderResult.ERROR_VALIDATION)
        self.assertEqual(result.field, field)
        self.assertFalse(Order.objects.exists())

    def test_required_fields(self):
        for field in ('provider_name', 'recipient_phone', 'recipient_district',
                      'package_description', 'scheduled_delivery_date'):
            self._assert_rejected(field, **{field: ''})

    def test_charged_flag_is_required(self):
        self._assert_rejected('is_charged', is_charged=None)

    def test_charged_requires_positive_amount(self):
        self._assert_rejected('amount_to_collect', amount_to_collect='')
        self._assert_rejected('amount_to_collect', amount_to_collect='0')
        self._assert_rejected('amount_to_collect', amount_to_collect='-5')
        self._assert_rejected('amount_to_collect', amount_to_collect='cincuenta')

    def test_charged_requires_known_payment_method(self):
        self._assert_rejected('payment_method', payment_method='')
        self._assert_rejected('payment_method', payment_method='bitcoin')

    def test_negative_override(self):
        self._assert_rejected('commission_override', commission_override='-1')

    def test_malformed_date(self):
        self._assert_rejected('scheduled_delivery_date', scheduled_delivery_date='mañana')

    def test_unknown_provider_account(self):
        self._assert_rejected('provider_id', provider_id='00000000-0000-0000-0000-000000000000')


class TestUpdateOrder(OrderBuilderTestCase):

    def setUp(self):
        super().setUp()
        self.order = self._build()

    def _update(self, moment=None, **payload):
        result = update_order(self.order.pk, payload, builder=self._builder(moment))
        self.assertTrue(result.success, result.message)
        return Order.objects.get(pk=self.order.pk)

    def test_preserves_creation(self):
        updated = self._update(observations='Tocar timbre')

        self.assertEqual(updated.observations, 'Tocar timbre')
        self.assertEqual(updated.created_at, self.order.created_at)
        self.assertFalse(updated.is_closed)
        self.assertEqual(updated.version, 1)

    def test_closed_order_is_refused(self):
        delivered_at = local_datetime(2024, 3, 15, 16, 0)
        Order.objects.filter(pk=self.order.pk).update(is_closed=True, delivered_at=delivered_at)

        result = update_order(
            self.order.pk,
            {'delivered_at': None, 'observations': 'Tocar timbre'},
            builder=self._builder(),
        )

        self.assertFalse(result.success)
        self.assertEqual(result.error, OrderResult.ERROR_VALIDATION)
        self.assertEqual(result.field, 'order_id')
        order = Order.objects.get(pk=self.order.pk)
        self.assertEqual(order.delivered_at, delivered_at)
        self.assertEqual(order.observations, '')
        self.assertTrue(order.is_closed)

    def test_addresses_are_geocoded_before_locking(self):
        events = []
        real_select_for_update = Order.objects.select_for_update

        class RecordingGeocoder(FakeGeocoder):
            def resolve(self, address):
                events.append('geocode')
                return super().resolve(address)

        def locking(*args, **kwargs):
            events.append('lock')
            return real_select_for_update(*args, **kwargs)

        self.geocoder = RecordingGeocoder()
        with patch.object(Order.objects, 'select_for_update', side_effect=locking):
            self._update(recipient_address='Av. Arequipa 100')

        self.assertEqual(events, ['geocode', 'geocode', 'lock'])

    def test_cutoff_is_not_reapplied(self):
        updated = self._update(
            moment=local_datetime(2024, 3, 15, 18, 0),
            scheduled_delivery_date='2024-03-15',
        )
        self.assertEqual(updated.scheduled_delivery_date, date(2024, 3, 15))

    def test_auto_commission_follows_new_district(self):
        updated = self._update(recipient_district='Comas (Lima)')
        self.assertEqual(updated.commission, 13)
        self.assertEqual(updated.provider_payout, 37)

    def test_manual_commission_survives_edits(self):
        self._update(commission_override='5')
        updated = self._update(recipient_district='Comas (Lima)', amount_to_collect='60')

        self.assertEqual(updated.commission_mode, CommissionMode.MANUAL)
        self.assertEqual(updated.commission, 5)
        self.assertEqual(updated.total_charged, 60)
        self.assertEqual(updated.provider_payout, 55)

    def test_clearing_override_returns_to_auto(self):
        self._update(commission_override='5')
        updated = self._update(commission_override=None)

        self.assertEqual(updated.commission_mode, CommissionMode.AUTO)
        self.assertEqual(updated.commission, 15)

    def test_pending_leg_route_follows_new_district(self):
        updated = self._update(recipient_district='Surco (Lima)')
        self.assertEqual(updated.delivery_route_name, 'SUR')

        updated = self._update(recipient_district='Miraflores (Lima)')
        self.assertEqual(updated.delivery_route_name, DELIVERY_PLACEHOLDER_ROUTE)
        self.assertEqual(updated.delivery_pending_reason, MANUAL_ASSIGNMENT_REASON)

    def test_assigned_leg_is_preserved(self):
        driver = create_driver(route='NOR')
        Order.objects.filter(pk=self.order.pk).update(
            delivery_state=AssignmentState.ASSIGNED,
            delivery_driver=driver,
            delivery_driver_name='Test Driver',
            delivery_route_name='NOR',
        )
        updated = self._update(recipient_district='Surco (Lima)')

        self.assertEqual(updated.delivery_driver, driver)
        self.assertEqual(updated.delivery_state, AssignmentState.ASSIGNED)
        self.assertEqual(updated.delivery_route_name, 'NOR')

    def test_explicit_assignment_replacement(self):
        driver = create_driver(route='SUR')
        updated = self._update(
            pickup_driver=str(driver.pk),
            pickup_driver_name='Otro Motorizado',
            pickup_state=AssignmentState.ASSIGNED,
            pickup_route_name='SUR',
        )
        self.assertEqual(updated.pickup_driver, driver)
        self.assertEqual(updated.pickup_driver_name, 'Otro Motorizado')
        self.assertEqual(updated.pickup_route_name, 'SUR')

    def test_validation_error_keeps_order(self):
        result = update_order(self.order.pk, {'recipient_name': ''}, builder=self._builder())

        self.assertFalse(result.success)
        self.assertEqual(result.field, 'recipient_name')
        self.assertEqual(Order.objects.get(pk=self.order.pk).recipient_name, 'Maria Lopez')

    def test_unknown_order(self):
        result = update_order('01-01-2024-000000-000000', {}, builder=self._builder())
        self.assertFalse(result.success)
        self.assertEqual(result.error, OrderResult.ERROR_NOT_FOUND)
