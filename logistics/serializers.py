"""
Logistics App Serializers - Orders & Closing
"""

from rest_framework import serializers

from .models import AssignmentState, Leg, Order
from .services.lifecycle import classify, is_eligible_for_closure


class OrderSerializer(serializers.ModelSerializer):
    """Full order payload. Status and closure eligibility are derived on read."""

    status = serializers.SerializerMethodField()
    is_eligible_for_closure = serializers.SerializerMethodField()
    requires_manual_assignment = serializers.BooleanField(read_only=True)
    driver = serializers.CharField(source='driver_display_name', read_only=True)
    dimensions = serializers.CharField(source='dimensions_display', read_only=True)

    class Meta:
        model = Order
        fields = [
            'id', 'status', 'is_eligible_for_closure',
            'provider', 'provider_name', 'provider_email', 'provider_phone',
            'provider_address', 'provider_district', 'provider_latitude', 'provider_longitude',
            'recipient_name', 'recipient_phone', 'recipient_address', 'recipient_district',
            'recipient_latitude', 'recipient_longitude',
            'package_description', 'observations',
            'package_height', 'package_width', 'package_length', 'package_volume',
            'is_oversized', 'dimensions',
            'pickup_photo_url', 'delivery_photo_url', 'payment_proof_url',
            'is_charged', 'payment_method', 'provider_payout', 'commission',
            'commission_mode', 'total_charged', 'payment_status', 'wallet_used',
            'pickup_state', 'pickup_route_id', 'pickup_route_name', 'pickup_driver',
            'pickup_driver_name', 'pickup_assigned_at', 'pickup_pending_reason',
            'delivery_state', 'delivery_route_id', 'delivery_route_name', 'delivery_driver',
            'delivery_driver_name', 'delivery_assigned_at', 'delivery_pending_reason',
            'driver', 'requires_manual_assignment',
            'created_at', 'scheduled_delivery_date', 'picked_up_at', 'delivered_at',
            'cancelled_at', 'updated_at',
            'is_closed', 'closed_at', 'allows_early_delivery',
            'visible_to_pickup_driver', 'visible_to_delivery_driver', 'visible_to_admin',
            'version',
        ]
        read_only_fields = fields

    def get_status(self, obj) -> str:
        return classify(obj)

    def get_is_eligible_for_closure(self, obj) -> bool:
        return is_eligible_for_closure(obj)


class OrderListSerializer(serializers.ModelSerializer):
    """Lightweight serializer for dashboard tables."""

    status = serializers.SerializerMethodField()
    driver = serializers.CharField(source='driver_display_name', read_only=True)

    class Meta:
        model = Order
        fields = [
            'id', 'status', 'provider_name', 'recipient_name',
            'provider_district', 'recipient_district',
            'is_charged', 'total_charged', 'commission', 'provider_payout',
            'driver', 'created_at', 'scheduled_delivery_date', 'is_closed', 'closed_at',
        ]
        read_only_fields = fields

    def get_status(self, obj) -> str:
        return classify(obj)


class OrderFormSerializer(serializers.Serializer):
    """
    Shape check for the order form.

    Business validation (required fields, charged rules, choices) is done
    by the order builder so the same rules apply to every caller.
    """

    provider_id = serializers.UUIDField(required=False, allow_null=True)
    provider_name = serializers.CharField(required=False, allow_blank=True)
    provider_email = serializers.CharField(required=False, allow_blank=True)
    provider_phone = serializers.CharField(required=False, allow_blank=True)
    provider_address = serializers.CharField(required=False, allow_blank=True)
    provider_district = serializers.CharField(required=False, allow_blank=True)
    recipient_name = serializers.CharField(required=False, allow_blank=True)
    recipient_phone = serializers.CharField(required=False, allow_blank=True)
    recipient_address = serializers.CharField(required=False, allow_blank=True)
    recipient_district = serializers.CharField(required=False, allow_blank=True)
    package_description = serializers.CharField(required=False, allow_blank=True)
    observations = serializers.CharField(required=False, allow_blank=True)
    package_height = serializers.CharField(required=False, allow_blank=True, allow_null=True)
    package_width = serializers.CharField(required=False, allow_blank=True, allow_null=True)
    package_length = serializers.CharField(required=False, allow_blank=True, allow_null=True)
    is_oversized = serializers.CharField(required=False, allow_blank=True, allow_null=True)
    is_charged = serializers.CharField(required=False, allow_blank=True, allow_null=True)
    payment_method = serializers.CharField(required=False, allow_blank=True, allow_null=True)
    amount_to_collect = serializers.CharField(required=False, allow_blank=True, allow_null=True)
    commission_override = serializers.CharField(required=False, allow_blank=True, allow_null=True)
    scheduled_delivery_date = serializers.CharField(required=False, allow_blank=True)
    payment_status = serializers.CharField(required=False, allow_blank=True)
    wallet_used = serializers.CharField(required=False, allow_blank=True)
    picked_up_at = serializers.CharField(required=False, allow_blank=True, allow_null=True)
    delivered_at = serializers.CharField(required=False, allow_blank=True, allow_null=True)
    cancelled_at = serializers.CharField(required=False, allow_blank=True, allow_null=True)

    # Assignment legs (edit only): replace the stored assignment when supplied
    pickup_state = serializers.ChoiceField(choices=AssignmentState.choices, required=False)
    pickup_route_id = serializers.CharField(required=False, allow_blank=True, allow_null=True)
    pickup_route_name = serializers.CharField(required=False, allow_blank=True, allow_null=True)
    pickup_driver = serializers.UUIDField(required=False, allow_null=True)
    pickup_driver_name = serializers.CharField(required=False, allow_blank=True, allow_null=True)
    pickup_assigned_at = serializers.CharField(required=False, allow_blank=True, allow_null=True)
    pickup_pending_reason = serializers.CharField(required=False, allow_blank=True, allow_null=True)
    delivery_state = serializers.ChoiceField(choices=AssignmentState.choices, required=False)
    delivery_route_id = serializers.CharField(required=False, allow_blank=True, allow_null=True)
    delivery_route_name = serializers.CharField(required=False, allow_blank=True, allow_null=True)
    delivery_driver = serializers.UUIDField(required=False, allow_null=True)
    delivery_driver_name = serializers.CharField(required=False, allow_blank=True, allow_null=True)
    delivery_assigned_at = serializers.CharField(required=False, allow_blank=True, allow_null=True)
    delivery_pending_reason = serializers.CharField(required=False, allow_blank=True, allow_null=True)

    def to_internal_value(self, data):
        # Booleans arrive as JSON true/false or as the form's "si"/"grande"
        prepared = dict(data.items()) if hasattr(data, 'items') else data
        for name in ('is_oversized', 'is_charged'):
            if isinstance(prepared.get(name), bool):
                prepared[name] = 'true' if prepared[name] else 'false'
        return super().to_internal_value(prepared)


class AssignDriverSerializer(serializers.Serializer):
    driver_id = serializers.UUIDField()
    leg = serializers.ChoiceField(choices=Leg.choices, default=Leg.PICKUP)


class LegStateSerializer(serializers.Serializer):
    leg = serializers.ChoiceField(choices=Leg.choices)
    state = serializers.ChoiceField(choices=AssignmentState.choices)


class OrderIdsSerializer(serializers.Serializer):
    order_ids = serializers.ListField(
        child=serializers.CharField(max_length=32),
        allow_empty=False,
    )


class ProviderSubtotalSerializer(serializers.Serializer):
    provider_name = serializers.CharField()
    orders = serializers.IntegerField()
    total_charged = serializers.IntegerField()
    commission = serializers.IntegerField()
    provider_payout = serializers.IntegerField()


class ClosingSummarySerializer(serializers.Serializer):
    orders = serializers.IntegerField()
    total_charged = serializers.IntegerField()
    commission = serializers.IntegerField()
    provider_payout = serializers.IntegerField()
    by_status = serializers.DictField(child=serializers.IntegerField())
    by_provider = ProviderSubtotalSerializer(many=True)
