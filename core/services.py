"""
CORE App - Account Services

Account creation for the dashboard roles.
"""

import logging
from django.conf import settings
from django.contrib.auth import get_user_model
from django.core.exceptions import PermissionDenied
from django.db import IntegrityError, transaction
from django.db.models import Q

from .models import UserRole

logger = logging.getLogger(__name__)

User = get_user_model()

REQUIRED_ACCOUNT_FIELDS = ('email', 'first_name', 'last_name', 'phone')

CUSTOMER_FIELDS = ('company', 'ruc', 'business_name')
DRIVER_FIELDS = (
    'vehicle_plate', 'vehicle_model', 'vehicle_color',
    'license_number', 'route',
)


def has_administrators() -> bool:
    return User.objects.filter(role=UserRole.ADMIN).exists()


@transaction.atomic
def create_account(data: dict, role: str, acting_user=None):
    """
    Create an account for a customer, driver, supervisor or administrator.

    Bootstrap rule: while no administrator exists anyone may create
    accounts (this is how the first administrator is registered). Once an
    administrator exists only authenticated administrators may do it.

    Args:
        data: Profile fields (email, first_name, last_name, phone, plus
              role-specific fields)
        role: One of UserRole values
        acting_user: The authenticated caller, if any

    Returns:
        The created User

    Raises:
        ValueError: Invalid role, missing field or duplicated email
        PermissionDenied: Caller is not allowed to create accounts
    """
    if role not in UserRole.values:
        raise ValueError('Tipo de usuario inválido')

    missing = [field for field in REQUIRED_ACCOUNT_FIELDS if not data.get(field)]
    if missing:
        raise ValueError(f"Faltan datos obligatorios: {', '.join(missing)}")

    if has_administrators():
        if acting_user is None or not acting_user.is_authenticated:
            raise PermissionDenied('El usuario debe estar autenticado')
        if acting_user.role != UserRole.ADMIN:
            raise PermissionDenied('Solo los administradores pueden crear usuarios')

    extra = {}
    if role == UserRole.CUSTOMER:
        extra = {field: data.get(field) or '' for field in CUSTOMER_FIELDS}
    elif role == UserRole.DRIVER:
        extra = {field: data.get(field) or '' for field in DRIVER_FIELDS}

    password = data.get('password') or settings.DEFAULT_ACCOUNT_PASSWORD

    try:
        user = User.objects.create_user(
            email=data['email'],
            password=password,
            first_name=data['first_name'],
            last_name=data['last_name'],
            phone=data['phone'],
            role=role,
            is_staff=(role == UserRole.ADMIN),
            **extra
        )
    except IntegrityError:
        raise ValueError('Este correo electrónico ya está registrado')

    logger.info(f"[ACCOUNTS] Created {role} account {user.email}")
    return user


def search_users(role: str, term: str = ''):
    """Accounts of a role whose name, email, phone, licence or plate contain `term`."""
    qs = User.objects.filter(role=role)
    term = (term or '').strip()
    if term:
        qs = qs.filter(
            Q(first_name__icontains=term)
            | Q(last_name__icontains=term)
            | Q(email__icontains=term)
            | Q(phone__icontains=term)
            | Q(license_number__icontains=term)
            | Q(vehicle_plate__icontains=term)
        )
    return qs
