"""
Core App Serializers - User Management
"""

from rest_framework import serializers
from django.contrib.auth import get_user_model

from .models import UserRole

User = get_user_model()


class UserSerializer(serializers.ModelSerializer):
    """Serializer for User model (read operations)."""

    full_name = serializers.ReadOnlyField()

    class Meta:
        model = User
        fields = [
            'id', 'email', 'first_name', 'last_name', 'full_name', 'phone',
            'role', 'status', 'company', 'ruc', 'business_name',
            'vehicle_plate', 'vehicle_model', 'vehicle_color',
            'license_number', 'route', 'is_active', 'date_joined'
        ]
        read_only_fields = ['id', 'role', 'date_joined']


class AccountCreateSerializer(serializers.Serializer):
    """Serializer for account creation (any role)."""

    role = serializers.ChoiceField(choices=UserRole.choices)
    email = serializers.EmailField()
    first_name = serializers.CharField(max_length=100)
    last_name = serializers.CharField(max_length=100)
    phone = serializers.CharField(max_length=15)
    password = serializers.CharField(write_only=True, required=False, allow_blank=True)

    company = serializers.CharField(max_length=150, required=False, allow_blank=True)
    ruc = serializers.CharField(max_length=11, required=False, allow_blank=True)
    business_name = serializers.CharField(max_length=200, required=False, allow_blank=True)

    vehicle_plate = serializers.CharField(max_length=10, required=False, allow_blank=True)
    vehicle_model = serializers.CharField(max_length=50, required=False, allow_blank=True)
    vehicle_color = serializers.CharField(max_length=30, required=False, allow_blank=True)
    license_number = serializers.CharField(max_length=20, required=False, allow_blank=True)
    route = serializers.CharField(max_length=10, required=False, allow_blank=True)
