"""
Django Admin configuration for CORE app.
"""

from django.contrib import admin
from django.contrib.auth.admin import UserAdmin as BaseUserAdmin
from .models import User


@admin.register(User)
class UserAdmin(BaseUserAdmin):
    """Custom admin for User model with email-based auth."""

    list_display = (
        'email',
        'full_name',
        'phone',
        'role',
        'route',
        'status',
        'is_active',
        'date_joined'
    )
    list_filter = ('role', 'status', 'route', 'is_active', 'is_staff')
    search_fields = ('email', 'first_name', 'last_name', 'phone', 'vehicle_plate')
    ordering = ('-date_joined',)

    fieldsets = (
        (None, {
            'fields': ('email', 'password')
        }),
        ('Perfil', {
            'fields': ('first_name', 'last_name', 'phone', 'role', 'status')
        }),
        ('Datos empresariales', {
            'fields': ('company', 'ruc', 'business_name'),
            'classes': ('collapse',)
        }),
        ('Motorizado', {
            'fields': ('route', 'license_number', 'vehicle_plate', 'vehicle_model', 'vehicle_color'),
            'classes': ('collapse',)
        }),
        ('Permisos', {
            'fields': ('is_active', 'is_staff', 'is_superuser', 'groups', 'user_permissions'),
            'classes': ('collapse',)
        }),
    )

    add_fieldsets = (
        (None, {
            'classes': ('wide',),
            'fields': ('email', 'first_name', 'role', 'password1', 'password2'),
        }),
    )

    readonly_fields = ('date_joined',)
