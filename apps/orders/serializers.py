from rest_framework import serializers

from .models import Order


class OrderSerializer(serializers.ModelSerializer):
    """Order with its creation-time snapshot."""

    class Meta:
        model = Order
        fields = [
            'id',
            'split',
            'client',
            'owner',
            'num_seats',
            'status',
            'payment_intent',
            'payment_method',
            'shipping_address',
            'refunded',
            'client_name',
            'owner_name',
            'split_title',
            'split_description',
            'split_picture',
            'amount',
            'fee_amount',
            'created_at',
            'updated_at',
        ]
        read_only_fields = fields


class OrderListSerializer(serializers.ModelSerializer):
    """Lightweight serializer for list views."""

    class Meta:
        model = Order
        fields = [
            'id',
            'split',
            'split_title',
            'client_name',
            'owner_name',
            'num_seats',
            'status',
            'amount',
            'created_at',
        ]
        read_only_fields = fields


# =============================================================================
# Input serializers
# =============================================================================

class OrderFilterSerializer(serializers.Serializer):
    """Query parameters for listing orders."""

    split = serializers.UUIDField(required=False)
    status = serializers.ChoiceField(choices=Order._meta.get_field('status').choices, required=False)


class PaymentQuoteInputSerializer(serializers.Serializer):
    split_id = serializers.UUIDField()
    num_seats = serializers.IntegerField(min_value=1)


class PaymentQuoteSerializer(serializers.Serializer):
    payment_intent_id = serializers.CharField()
    amount = serializers.IntegerField(help_text='Total to pay in minor currency units, fee included')
    fee_amount = serializers.IntegerField()
    client_secret = serializers.CharField()
    publishable_key = serializers.CharField(allow_blank=True)


class OrderCreateSerializer(serializers.Serializer):
    split_id = serializers.UUIDField()
    payment_intent = serializers.CharField(max_length=255)
    num_seats = serializers.IntegerField(min_value=1)
    shipping_address = serializers.CharField(required=False, allow_blank=True, default='')


class OrderUpdateSerializer(serializers.Serializer):
    shipping_address = serializers.CharField(allow_blank=True)


class OwnerCancelSerializer(serializers.Serializer):
    split_id = serializers.UUIDField()
    client_id = serializers.UUIDField()


class ClientCancelSerializer(serializers.Serializer):
    split_id = serializers.UUIDField()


class OrderEnvelopeSerializer(serializers.Serializer):
    """Response shape of every order mutation."""

    code = serializers.CharField()
    success = serializers.BooleanField()
    message = serializers.CharField(allow_blank=True)
    order = OrderSerializer(allow_null=True)
