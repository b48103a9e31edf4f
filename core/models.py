"""
CORE App - Custom User Model for the courier dashboard

Handles: Users (Administrators, Supervisors, Customers, Drivers)
"""

import uuid
from django.contrib.auth.models import AbstractBaseUser, BaseUserManager, PermissionsMixin
from django.db import models


class UserRole(models.TextChoices):
    """User role enumeration."""
    ADMIN = 'ADMIN', 'Administrador'
    CUSTOMER = 'CUSTOMER', 'Cliente'
    DRIVER = 'DRIVER', 'Motorizado'
    SUPERVISOR = 'SUPERVISOR', 'Supervisor'


class AccountStatus(models.TextChoices):
    ACTIVE = 'active', 'Activo'
    INACTIVE = 'inactive', 'Inactivo'


class UserManager(BaseUserManager):
    """Custom user manager for email-based authentication."""

    def create_user(self, email, password=None, **extra_fields):
        if not email:
            raise ValueError('El correo electrónico es obligatorio')

        email = self.normalize_email(email)
        user = self.model(email=email, **extra_fields)
        if password:
            user.set_password(password)
        else:
            user.set_unusable_password()
        user.save(using=self._db)
        return user

    def create_superuser(self, email, password=None, **extra_fields):
        extra_fields.setdefault('is_staff', True)
        extra_fields.setdefault('is_superuser', True)
        extra_fields.setdefault('role', UserRole.ADMIN)

        if extra_fields.get('is_staff') is not True:
            raise ValueError('Superuser must have is_staff=True.')
        if extra_fields.get('is_superuser') is not True:
            raise ValueError('Superuser must have is_superuser=True.')

        return self.create_user(email, password, **extra_fields)


class User(AbstractBaseUser, PermissionsMixin):
    """
    Custom User model using email as primary identifier.

    A single table holds every role of the dashboard:
    - CUSTOMER rows are the providers (senders) referenced by orders
    - DRIVER rows carry vehicle data and the zone group ("ruta") they cover
    - ADMIN rows run assignment and the daily closing
    - SUPERVISOR rows follow every order without changing them
    """

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    email = models.EmailField(unique=True, verbose_name="Correo electrónico")

    # Profile
    first_name = models.CharField(max_length=100, verbose_name="Nombre")
    last_name = models.CharField(max_length=100, blank=True, verbose_name="Apellido")
    phone = models.CharField(max_length=15, blank=True, verbose_name="Teléfono")
    role = models.CharField(
        max_length=20,
        choices=UserRole.choices,
        default=UserRole.CUSTOMER,
        verbose_name="Rol"
    )
    status = models.CharField(
        max_length=10,
        choices=AccountStatus.choices,
        default=AccountStatus.ACTIVE,
        verbose_name="Estado"
    )

    # Business data (CUSTOMER users)
    company = models.CharField(max_length=150, blank=True, verbose_name="Empresa")
    ruc = models.CharField(max_length=11, blank=True, verbose_name="RUC")
    business_name = models.CharField(max_length=200, blank=True, verbose_name="Razón social")

    # Vehicle data (DRIVER users)
    vehicle_plate = models.CharField(max_length=10, blank=True, verbose_name="Placa")
    vehicle_model = models.CharField(max_length=50, blank=True, verbose_name="Modelo")
    vehicle_color = models.CharField(max_length=30, blank=True, verbose_name="Color")
    license_number = models.CharField(max_length=20, blank=True, verbose_name="Licencia")
    route = models.CharField(
        max_length=10,
        blank=True,
        verbose_name="Ruta",
        help_text="Grupo de zona que cubre el motorizado (NOR, SUR, EST, OES, SJL)"
    )

    # Django Auth Fields
    is_active = models.BooleanField(default=True)
    is_staff = models.BooleanField(default=False)
    date_joined = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    objects = UserManager()

    USERNAME_FIELD = 'email'
    REQUIRED_FIELDS = ['first_name']

    class Meta:
        verbose_name = "Usuario"
        verbose_name_plural = "Usuarios"
        ordering = ['-date_joined']

    def __str__(self):
        return f"{self.full_name or self.email} ({self.role})"

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}".strip()

    @property
    def is_driver(self) -> bool:
        return self.role == UserRole.DRIVER

    @property
    def is_admin_role(self) -> bool:
        return self.role == UserRole.ADMIN

    @property
    def is_supervisor(self) -> bool:
        return self.role == UserRole.SUPERVISOR
