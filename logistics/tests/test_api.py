"""
Orders & Closing API tests
"""

from django.test import TestCase, override_settings
from rest_framework import status
from rest_framework.test import APIClient

from core.models import UserRole
from logistics.models import AssignmentState, Order
from logistics.services.closure import close_orders

from .factories import create_driver, create_order, create_user, days_ago, order_form

UNKNOWN_ORDER = '01-01-2024-000000-000000'


@override_settings(GEOCODING_API_KEY='')
class APITestCase(TestCase):

    def setUp(self):
        self.client = APIClient()
        self.admin = create_user(UserRole.ADMIN, 'admin@test.pe')
        self.customer = create_user(UserRole.CUSTOMER, 'cliente@test.pe')
        self.driver = create_driver(first_name='Carlos', last_name='Rojas', route='SUR')
        self.client.force_authenticate(user=self.admin)

    def _ids(self, response):
        return {row['id'] for row in response.data}


class TestOrderCreateAPI(APITestCase):

    def test_create_order(self):
        form = order_form(is_oversized=True, scheduled_delivery_date='2030-01-10')
        response = self.client.post('/api/orders/', form, format='json')

        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertTrue(response.data['success'])
        order = Order.objects.get(pk=response.data['order_id'])
        self.assertEqual(order.commission, 20)
        self.assertEqual(order.provider_payout, 30)

    def test_create_returns_validation_field(self):
        response = self.client.post(
            '/api/orders/', order_form(amount_to_collect='0'), format='json'
        )

        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertFalse(response.data['success'])
        self.assertEqual(response.data['field'], 'amount_to_collect')
        self.assertFalse(Order.objects.exists())

    def test_create_requires_admin(self):
        self.client.force_authenticate(user=self.customer)
        response = self.client.post('/api/orders/', order_form(), format='json')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

    def test_anonymous_is_rejected(self):
        self.client.force_authenticate(user=None)
        response = self.client.get('/api/orders/')
        self.assertEqual(response.status_code, status.HTTP_401_UNAUTHORIZED)


class TestOrderUpdateAPI(APITestCase):

    def setUp(self):
        super().setUp()
        self.order = create_order(recipient_district='Carabayllo (Lima)', commission=15, provider_payout=35)

    def test_patch_order(self):
        response = self.client.patch(
            f'/api/orders/{self.order.pk}/',
            {'recipient_district': 'Comas (Lima)', 'commission_override': '5'},
            format='json',
        )

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        order = Order.objects.get(pk=self.order.pk)
        self.assertEqual(order.recipient_district, 'Comas (Lima)')
        self.assertEqual(order.commission, 5)
        self.assertEqual(order.provider_payout, 45)

    def test_patch_delivery_leg(self):
        response = self.client.patch(
            f'/api/orders/{self.order.pk}/',
            {'delivery_state': AssignmentState.EN_ROUTE, 'delivery_driver': str(self.driver.pk)},
            format='json',
        )

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        order = Order.objects.get(pk=self.order.pk)
        self.assertEqual(order.delivery_state, AssignmentState.EN_ROUTE)
        self.assertEqual(order.delivery_driver, self.driver)

    def test_patch_closed_order_is_refused(self):
        Order.objects.filter(pk=self.order.pk).update(is_closed=True)
        response = self.client.patch(
            f'/api/orders/{self.order.pk}/', {'observations': 'Tocar timbre'}, format='json'
        )

        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.data['field'], 'order_id')

    def test_patch_unknown_order(self):
        response = self.client.patch(f'/api/orders/{UNKNOWN_ORDER}/', {}, format='json')
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)


class TestOrderListAPI(APITestCase):

    def setUp(self):
        super().setUp()
        self.pending = create_order(provider_name='TIENDA NORTE', recipient_district='Comas (Lima)')
        self.delivered = create_order(delivered_at=days_ago(1), delivery_driver_name='Carlos Rojas')
        self.closed = create_order(cancelled_at=days_ago(1))
        close_orders([self.closed.pk])

    def test_list_excludes_closed(self):
        response = self.client.get('/api/orders/')

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(self._ids(response), {self.pending.pk, self.delivered.pk})

    def test_list_include_closed(self):
        response = self.client.get('/api/orders/', {'include_closed': 'true'})
        self.assertIn(self.closed.pk, self._ids(response))

    def test_status_filter(self):
        response = self.client.get('/api/orders/', {'status': 'delivered'})
        self.assertEqual(self._ids(response), {self.delivered.pk})
        self.assertEqual(response.data[0]['status'], 'delivered')

    def test_district_and_driver_filters(self):
        response = self.client.get('/api/orders/', {'district': 'Comas (Lima)'})
        self.assertEqual(self._ids(response), {self.pending.pk})

        response = self.client.get('/api/orders/', {'driver': 'Carlos Rojas'})
        self.assertEqual(self._ids(response), {self.delivered.pk})

    def test_route_and_date_filters(self):
        Order.objects.filter(pk=self.pending.pk).update(delivery_route_name='NOR', created_at=days_ago(10))

        response = self.client.get('/api/orders/', {'route': 'NOR'})
        self.assertEqual(self._ids(response), {self.pending.pk})

        response = self.client.get('/api/orders/', {'created_from': days_ago(5).isoformat()})
        self.assertEqual(self._ids(response), {self.delivered.pk})

    def test_search(self):
        response = self.client.get('/api/orders/', {'search': 'norte'})
        self.assertEqual(self._ids(response), {self.pending.pk})

    def test_retrieve_includes_derived_fields(self):
        response = self.client.get(f'/api/orders/{self.delivered.pk}/')

        self.assertEqual(response.data['status'], 'delivered')
        self.assertTrue(response.data['is_eligible_for_closure'])

    def test_stats(self):
        response = self.client.get('/api/orders/stats/')

        self.assertEqual(response.data['total'], 2)
        self.assertEqual(response.data['pending'], 1)
        self.assertEqual(response.data['delivered'], 1)
        self.assertEqual(response.data['cancelled'], 0)
        self.assertEqual(response.data['total_amount'], 100)

    def test_districts_catalogue(self):
        response = self.client.get('/api/orders/districts/')
        self.assertIn('Carabayllo (Lima)', response.data)


class TestOrderVisibility(APITestCase):

    def setUp(self):
        super().setUp()
        self.own = create_order(provider=self.customer)
        self.assigned = create_order(
            pickup_driver=self.driver,
            pickup_state=AssignmentState.ASSIGNED,
            visible_to_pickup_driver=True,
        )

    def test_customer_sees_own_orders(self):
        self.client.force_authenticate(user=self.customer)
        response = self.client.get('/api/orders/')
        self.assertEqual(self._ids(response), {self.own.pk})

    def test_driver_sees_assigned_orders(self):
        self.client.force_authenticate(user=self.driver)
        response = self.client.get('/api/orders/')
        self.assertEqual(self._ids(response), {self.assigned.pk})

    def test_supervisor_sees_every_order(self):
        supervisor = create_user(UserRole.SUPERVISOR, 'supervisor@test.pe')
        self.client.force_authenticate(user=supervisor)

        response = self.client.get('/api/orders/')
        self.assertEqual(self._ids(response), {self.own.pk, self.assigned.pk})

        response = self.client.get(f'/api/orders/{self.own.pk}/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)

    def test_supervisor_cannot_change_orders(self):
        supervisor = create_user(UserRole.SUPERVISOR, 'supervisor@test.pe')
        self.client.force_authenticate(user=supervisor)

        response = self.client.post('/api/orders/', order_form(), format='json')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

        response = self.client.post(f'/api/orders/{self.assigned.pk}/pickup/')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)
        self.assertIsNone(Order.objects.get(pk=self.assigned.pk).picked_up_at)

    def test_driver_records_pickup(self):
        self.client.force_authenticate(user=self.driver)
        response = self.client.post(f'/api/orders/{self.assigned.pk}/pickup/')

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['status'], 'in-progress')

    def test_driver_cannot_touch_other_orders(self):
        self.client.force_authenticate(user=self.driver)
        response = self.client.post(f'/api/orders/{self.own.pk}/deliver/')
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)


class TestOrderActionsAPI(APITestCase):

    def setUp(self):
        super().setUp()
        self.order = create_order()

    def test_assign_driver(self):
        response = self.client.post(
            f'/api/orders/{self.order.pk}/assign_driver/',
            {'driver_id': str(self.driver.pk), 'leg': 'delivery'},
            format='json',
        )

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertTrue(response.data['success'])
        self.assertEqual(Order.objects.get(pk=self.order.pk).delivery_driver, self.driver)

    def test_assign_non_driver(self):
        response = self.client.post(
            f'/api/orders/{self.order.pk}/assign_driver/',
            {'driver_id': str(self.customer.pk)},
            format='json',
        )
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertFalse(response.data['success'])

    def test_deliver_then_cancel_is_refused(self):
        response = self.client.post(f'/api/orders/{self.order.pk}/deliver/')
        self.assertEqual(response.data['status'], 'delivered')

        response = self.client.post(f'/api/orders/{self.order.pk}/cancel/')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.data['field'], 'cancelled_at')

    def test_leg_state(self):
        response = self.client.post(
            f'/api/orders/{self.order.pk}/leg_state/',
            {'leg': 'delivery', 'state': AssignmentState.EN_ROUTE},
            format='json',
        )
        self.assertEqual(response.data['status'], 'in-progress')


class TestClosingAPI(APITestCase):

    def setUp(self):
        super().setUp()
        self.delivered = create_order(provider_name='ALFA', delivered_at=days_ago(1))
        self.cancelled = create_order(provider_name='BETA', cancelled_at=days_ago(1), total_charged=0,
                                      provider_payout=-10)
        self.pending = create_order()

    def test_candidates(self):
        response = self.client.get('/api/closing/')
        self.assertEqual(self._ids(response), {self.delivered.pk, self.cancelled.pk})

    def test_summary(self):
        response = self.client.get('/api/closing/summary/')

        self.assertEqual(response.data['orders'], 2)
        self.assertEqual(response.data['total_charged'], 50)
        self.assertEqual(response.data['commission'], 20)
        self.assertEqual(response.data['provider_payout'], 30)
        self.assertEqual(
            [p['provider_name'] for p in response.data['by_provider']], ['ALFA', 'BETA']
        )

    def test_close_and_reopen(self):
        ids = [self.delivered.pk, self.cancelled.pk]

        response = self.client.post('/api/closing/close/', {'order_ids': ids}, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['closed'], 2)
        self.assertEqual(Order.objects.filter(is_closed=True).count(), 2)

        response = self.client.post('/api/closing/reopen/', {'order_ids': ids[:1]}, format='json')
        self.assertEqual(response.data['reopened'], 1)

    def test_close_unfinished_is_rejected(self):
        response = self.client.post(
            '/api/closing/close/',
            {'order_ids': [self.delivered.pk, self.pending.pk]},
            format='json',
        )
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertFalse(Order.objects.filter(is_closed=True).exists())

    def test_close_unknown_is_not_found(self):
        response = self.client.post(
            '/api/closing/close/', {'order_ids': [UNKNOWN_ORDER]}, format='json'
        )
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)

    def test_closing_requires_admin(self):
        self.client.force_authenticate(user=self.driver)
        response = self.client.get('/api/closing/')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)
