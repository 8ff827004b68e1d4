# ==========================================
# apps/splits/models.py
# ==========================================

from decimal import Decimal, ROUND_HALF_UP

from django.core.exceptions import ValidationError
from django.core.validators import MinValueValidator
from django.db import models
from django.db.models import F, Q
import uuid


class SplitType(models.TextChoices):
    APP = 'APP', 'App'
    LEGACY = 'LEGACY', 'Legacy'


class SplitStatus(models.TextChoices):
    ACTIVE = 'ACTIVE', 'Active'
    COMPLETE = 'COMPLETE', 'Complete'
    CANCELLED = 'CANCELLED', 'Cancelled'
    EXPIRED = 'EXPIRED', 'Expired'


class ShippingType(models.TextChoices):
    INPERSON = 'INPERSON', 'In person'
    SHIPPING = 'SHIPPING', 'Shipping'
    VIRTUAL = 'VIRTUAL', 'Virtual'


# Seat counters of these Splits never change again
FROZEN_STATUSES = (SplitStatus.CANCELLED, SplitStatus.EXPIRED)

# Splits in these states are skipped by cancellation and the expiration sweep
TERMINAL_STATUSES = (SplitStatus.COMPLETE, SplitStatus.CANCELLED, SplitStatus.EXPIRED)

APP_ONLY_FIELDS = ('shipping_type', 'shipping_details')
LEGACY_ONLY_FIELDS = ('legacy_url', 'legacy_id')


class Split(models.Model):
    """
    Group purchase listing with a fixed number of places.

    APP Splits are created in the app and take Orders; LEGACY Splits are
    imported listings that only carry catalogue and price-ladder data.
    """

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    type = models.CharField(max_length=10, choices=SplitType.choices, default=SplitType.APP, db_index=True)
    owner = models.ForeignKey('accounts.User', on_delete=models.CASCADE, related_name='owned_splits')

    title = models.CharField(max_length=200)
    description = models.TextField(blank=True)
    tags = models.JSONField(default=list, blank=True)
    category_ids = models.JSONField(default=list, blank=True)
    category_names = models.JSONField(default=list, blank=True)
    picture = models.URLField(max_length=500, blank=True)

    # Capacity
    num_places = models.PositiveIntegerField(default=1)
    num_seats = models.PositiveIntegerField(default=0)
    owner_seats = models.PositiveIntegerField(default=0, editable=False)
    places_left = models.IntegerField(default=1)

    # Commercial
    price = models.DecimalField(max_digits=10, decimal_places=2, validators=[MinValueValidator(Decimal('0.00'))])
    regular_price = models.DecimalField(max_digits=10, decimal_places=2, null=True, blank=True)
    sale_price = models.DecimalField(max_digits=10, decimal_places=2, null=True, blank=True)
    split_prices = models.JSONField(default=list, blank=True)

    status = models.CharField(max_length=12, choices=SplitStatus.choices, default=SplitStatus.ACTIVE, db_index=True)
    cancel_reason = models.TextField(blank=True)
    expiration_date = models.DateTimeField(null=True, blank=True, db_index=True)

    # APP only
    shipping_type = models.CharField(max_length=10, choices=ShippingType.choices, blank=True)
    shipping_details = models.TextField(blank=True)

    # LEGACY only
    legacy_url = models.URLField(max_length=500, blank=True)
    legacy_id = models.PositiveIntegerField(null=True, blank=True, db_index=True)

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = 'splits'
        indexes = [
            models.Index(fields=['type', 'status', 'expiration_date'], name='splits_type_status_exp_idx'),
            models.Index(fields=['owner', 'created_at'], name='splits_owner_created_idx'),
        ]
        constraints = [
            models.CheckConstraint(
                condition=Q(type=SplitType.LEGACY) | Q(places_left__gte=0),
                name='splits_app_places_left_non_negative',
            ),
            models.CheckConstraint(
                condition=Q(type=SplitType.LEGACY) | Q(places_left=F('num_places') - F('num_seats')),
                name='splits_app_seat_accounting',
            ),
            models.CheckConstraint(
                condition=Q(cancel_reason='') | Q(status__in=FROZEN_STATUSES),
                name='splits_cancel_reason_only_when_stopped',
            ),
        ]
        ordering = ['-created_at']

    def __str__(self):
        return f"{self.title} ({self.type}, {self.status})"

    def clean(self):
        """Reject fields that belong to the other variant."""
        if self.type == SplitType.APP:
            wrong = [name for name in LEGACY_ONLY_FIELDS if getattr(self, name)]
        else:
            wrong = [name for name in APP_ONLY_FIELDS if getattr(self, name)]
        if wrong:
            raise ValidationError({
                name: f'Not allowed on {self.type} splits.' for name in wrong
            })

    @property
    def is_app(self):
        return self.type == SplitType.APP

    @property
    def is_frozen(self):
        return self.status in FROZEN_STATUSES

    @property
    def is_terminal(self):
        return self.status in TERMINAL_STATUSES

    def is_managed_by(self, user):
        """Owner or marketplace administrator."""
        return self.owner_id == user.id or user.is_staff or user.is_superuser

    def _price_ratio(self, index):
        ratio = Decimal(str(self.split_prices[index])) / Decimal(self.price)
        return ratio.quantize(Decimal('0.01'), rounding=ROUND_HALF_UP) * 100

    @property
    def discount_low(self):
        """Discount (percent) of the first tier of the LEGACY price ladder."""
        if not self.price or not self.split_prices:
            return Decimal('1')
        return Decimal('100') - self._price_ratio(0)

    @property
    def discount_high(self):
        """Discount (percent) of the last tier of the LEGACY price ladder."""
        if not self.price or not self.split_prices:
            return Decimal('0')
        return Decimal('100') - self._price_ratio(-1)
