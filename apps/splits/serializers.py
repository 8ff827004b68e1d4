from rest_framework import serializers

from apps.accounts.models import User

from .models import ShippingType, Split, SplitStatus, SplitType


class UserMinimalSerializer(serializers.ModelSerializer):
    """Minimal user info for nested serialization."""

    display_name = serializers.SerializerMethodField()

    class Meta:
        model = User
        fields = ['id', 'display_name']
        read_only_fields = fields

    def get_display_name(self, obj):
        return obj.get_display_name()


class SplitSerializer(serializers.ModelSerializer):
    """Main serializer for Splits."""

    owner = UserMinimalSerializer(read_only=True)
    conversation_id = serializers.SerializerMethodField()
    discount_low = serializers.SerializerMethodField()
    discount_high = serializers.SerializerMethodField()

    class Meta:
        model = Split
        fields = [
            'id',
            'type',
            'owner',
            'title',
            'description',
            'tags',
            'category_ids',
            'category_names',
            'picture',
            'num_places',
            'num_seats',
            'owner_seats',
            'places_left',
            'price',
            'regular_price',
            'sale_price',
            'split_prices',
            'discount_low',
            'discount_high',
            'status',
            'cancel_reason',
            'expiration_date',
            'shipping_type',
            'shipping_details',
            'legacy_url',
            'legacy_id',
            'conversation_id',
            'created_at',
            'updated_at',
        ]
        read_only_fields = fields

    def get_conversation_id(self, obj):
        conversation = getattr(obj, 'conversation', None)
        return str(conversation.id) if conversation else None

    def get_discount_low(self, obj):
        """Only meaningful for LEGACY price ladders."""
        if obj.type != SplitType.LEGACY:
            return None
        return str(obj.discount_low)

    def get_discount_high(self, obj):
        if obj.type != SplitType.LEGACY:
            return None
        return str(obj.discount_high)


class SplitListSerializer(serializers.ModelSerializer):
    """Lightweight serializer for list views."""

    owner = UserMinimalSerializer(read_only=True)

    class Meta:
        model = Split
        fields = [
            'id',
            'type',
            'owner',
            'title',
            'picture',
            'num_places',
            'places_left',
            'price',
            'status',
            'expiration_date',
            'shipping_type',
        ]
        read_only_fields = fields


# =============================================================================
# Input serializers
# =============================================================================

class SplitCreateSerializer(serializers.Serializer):
    title = serializers.CharField(max_length=200)
    description = serializers.CharField(required=False, allow_blank=True, default='')
    tags = serializers.ListField(child=serializers.CharField(), required=False, default=list)
    category_ids = serializers.ListField(child=serializers.CharField(), required=False, default=list)
    category_names = serializers.ListField(child=serializers.CharField(), required=False, default=list)
    picture = serializers.URLField(required=False, allow_blank=True, default='')
    num_places = serializers.IntegerField(min_value=1)
    num_seats = serializers.IntegerField(min_value=0, required=False, default=0)
    price = serializers.DecimalField(max_digits=10, decimal_places=2, min_value=0)
    regular_price = serializers.DecimalField(max_digits=10, decimal_places=2, required=False, allow_null=True, default=None)
    sale_price = serializers.DecimalField(max_digits=10, decimal_places=2, required=False, allow_null=True, default=None)
    shipping_type = serializers.ChoiceField(choices=ShippingType.choices, required=False, default=ShippingType.INPERSON)
    shipping_details = serializers.CharField(required=False, allow_blank=True, default='')
    expiration_date = serializers.DateTimeField(required=False, allow_null=True, default=None)

    def validate(self, attrs):
        if attrs['num_seats'] >= attrs['num_places']:
            raise serializers.ValidationError({'num_seats': "NumSeats can't be bigger than numPlaces"})
        return attrs


class SplitUpdateSerializer(serializers.Serializer):
    """Partial update; only the fields sent are changed."""

    title = serializers.CharField(max_length=200, required=False)
    description = serializers.CharField(required=False, allow_blank=True)
    tags = serializers.ListField(child=serializers.CharField(), required=False)
    category_ids = serializers.ListField(child=serializers.CharField(), required=False)
    category_names = serializers.ListField(child=serializers.CharField(), required=False)
    picture = serializers.URLField(required=False, allow_blank=True)
    num_places = serializers.IntegerField(min_value=1, required=False)
    price = serializers.DecimalField(max_digits=10, decimal_places=2, min_value=0, required=False)
    regular_price = serializers.DecimalField(max_digits=10, decimal_places=2, required=False, allow_null=True)
    sale_price = serializers.DecimalField(max_digits=10, decimal_places=2, required=False, allow_null=True)
    shipping_type = serializers.ChoiceField(choices=ShippingType.choices, required=False)
    shipping_details = serializers.CharField(required=False, allow_blank=True)
    expiration_date = serializers.DateTimeField(required=False, allow_null=True)


class SplitFilterSerializer(serializers.Serializer):
    """Query parameters for listing Splits."""

    owner = serializers.UUIDField(required=False)
    type = serializers.ChoiceField(choices=SplitType.choices, required=False)
    shipping_type = serializers.ChoiceField(choices=ShippingType.choices, required=False)
    status = serializers.ChoiceField(choices=SplitStatus.choices, required=False)
    search = serializers.CharField(required=False, allow_blank=True)


class SplitCancelSerializer(serializers.Serializer):
    reason = serializers.CharField(required=False, allow_blank=True, default='')


class SplitEnvelopeSerializer(serializers.Serializer):
    """Response shape of Split cancellation."""

    code = serializers.CharField()
    success = serializers.BooleanField()
    message = serializers.CharField(allow_blank=True)
    split = SplitSerializer(allow_null=True)
