"""
Core Tests
==========

Tests for:
1. Custom User Model (creation, roles)
2. Account service (bootstrap rule, permissions, search)
3. Users API
"""

from django.core.exceptions import PermissionDenied
from django.test import TestCase
from rest_framework import status
from rest_framework.test import APIClient

from core.models import AccountStatus, User, UserRole
from core.services import create_account, has_administrators, search_users


def _account_data(email, **kwargs):
    data = {
        'email': email,
        'first_name': 'Ana',
        'last_name': 'Torres',
        'phone': '987654321',
    }
    data.update(kwargs)
    return data


class TestUserModel(TestCase):
    """Tests for the custom User model."""

    def test_create_user_with_email(self):
        user = User.objects.create_user(email='Ana@Test.PE', password='testpass123', first_name='Ana')

        self.assertEqual(user.email, 'Ana@test.pe')
        self.assertTrue(user.check_password('testpass123'))
        self.assertEqual(user.role, UserRole.CUSTOMER)
        self.assertEqual(user.status, AccountStatus.ACTIVE)

    def test_email_is_required(self):
        with self.assertRaises(ValueError):
            User.objects.create_user(email='', password='x')

    def test_superuser_is_admin(self):
        user = User.objects.create_superuser(email='root@test.pe', password='x', first_name='Root')
        self.assertTrue(user.is_staff)
        self.assertTrue(user.is_admin_role)

    def test_full_name(self):
        user = User(first_name='Carlos', last_name='Rojas', role=UserRole.DRIVER)
        self.assertEqual(user.full_name, 'Carlos Rojas')
        self.assertTrue(user.is_driver)
        self.assertEqual(User(first_name='Carlos').full_name, 'Carlos')


class TestAccountService(TestCase):

    def test_first_admin_bootstrap(self):
        self.assertFalse(has_administrators())

        admin = create_account(_account_data('admin@test.pe'), UserRole.ADMIN)

        self.assertTrue(has_administrators())
        self.assertTrue(admin.is_staff)

    def test_anonymous_blocked_once_admin_exists(self):
        create_account(_account_data('admin@test.pe'), UserRole.ADMIN)

        with self.assertRaises(PermissionDenied):
            create_account(_account_data('otro@test.pe'), UserRole.CUSTOMER)

    def test_only_admins_create_accounts(self):
        admin = create_account(_account_data('admin@test.pe'), UserRole.ADMIN)
        customer = create_account(_account_data('cliente@test.pe'), UserRole.CUSTOMER, acting_user=admin)

        with self.assertRaises(PermissionDenied):
            create_account(_account_data('otro@test.pe'), UserRole.DRIVER, acting_user=customer)

    def test_admin_creates_supervisor(self):
        admin = create_account(_account_data('admin@test.pe'), UserRole.ADMIN)
        supervisor = create_account(_account_data('super@test.pe'), UserRole.SUPERVISOR, acting_user=admin)

        self.assertTrue(supervisor.is_supervisor)
        self.assertFalse(supervisor.is_staff)
        self.assertFalse(supervisor.is_admin_role)

    def test_driver_fields(self):
        driver = create_account(
            _account_data('moto@test.pe', vehicle_plate='ABC-123', route='NOR', company='ignorada'),
            UserRole.DRIVER,
        )
        self.assertEqual(driver.vehicle_plate, 'ABC-123')
        self.assertEqual(driver.route, 'NOR')
        self.assertEqual(driver.company, '')

    def test_default_password(self):
        with self.settings(DEFAULT_ACCOUNT_PASSWORD='bienvenido123'):
            user = create_account(_account_data('cliente@test.pe'), UserRole.CUSTOMER)
        self.assertTrue(user.check_password('bienvenido123'))

    def test_validation(self):
        with self.assertRaises(ValueError):
            create_account(_account_data('x@test.pe'), 'GERENTE')
        with self.assertRaises(ValueError):
            create_account(_account_data('x@test.pe', phone=''), UserRole.CUSTOMER)

    def test_duplicate_email(self):
        create_account(_account_data('cliente@test.pe'), UserRole.CUSTOMER)
        with self.assertRaises(ValueError):
            create_account(_account_data('cliente@test.pe'), UserRole.CUSTOMER)

    def test_search_users(self):
        create_account(_account_data('moto1@test.pe', vehicle_plate='XYZ-999'), UserRole.DRIVER)
        create_account(_account_data('moto2@test.pe', first_name='Luis'), UserRole.DRIVER)

        self.assertEqual(search_users(UserRole.DRIVER).count(), 2)
        self.assertEqual(search_users(UserRole.DRIVER, 'xyz').count(), 1)
        self.assertEqual(search_users(UserRole.DRIVER, 'luis').count(), 1)
        self.assertEqual(search_users(UserRole.CUSTOMER, 'luis').count(), 0)


class TestUsersAPI(TestCase):

    def setUp(self):
        self.client = APIClient()

    def test_bootstrap_registration(self):
        response = self.client.post(
            '/api/users/', {'role': UserRole.ADMIN, **_account_data('admin@test.pe')}, format='json'
        )
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertTrue(response.data['success'])

    def test_registration_closed_after_bootstrap(self):
        create_account(_account_data('admin@test.pe'), UserRole.ADMIN)

        response = self.client.post(
            '/api/users/', {'role': UserRole.CUSTOMER, **_account_data('x@test.pe')}, format='json'
        )
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

    def test_admin_lists_drivers(self):
        admin = create_account(_account_data('admin@test.pe'), UserRole.ADMIN)
        create_account(_account_data('moto@test.pe'), UserRole.DRIVER, acting_user=admin)
        self.client.force_authenticate(user=admin)

        response = self.client.get('/api/users/drivers/')

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual([u['email'] for u in response.data], ['moto@test.pe'])

    def test_me(self):
        customer = create_account(_account_data('cliente@test.pe'), UserRole.CUSTOMER)
        self.client.force_authenticate(user=customer)

        response = self.client.get('/api/users/me/')

        self.assertEqual(response.data['email'], 'cliente@test.pe')

    def test_non_admin_cannot_list(self):
        customer = create_account(_account_data('cliente@test.pe'), UserRole.CUSTOMER)
        self.client.force_authenticate(user=customer)

        response = self.client.get('/api/users/')

        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)
