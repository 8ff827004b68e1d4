# ==========================================
# apps/orders/models.py
# ==========================================

from django.core.validators import MinValueValidator
from django.db import models
from django.db.models import Q
import uuid

from apps.payments.gateway.port import AuthorizationStatus


class OrderStatus(models.TextChoices):
    PAYMENT_PENDING = 'payment_pending', 'Payment pending'
    PAYMENT_FAILED = 'payment_failed', 'Payment failed'
    PAID = 'paid', 'Paid'
    SYSTEM_CANCELED = 'system_canceled', 'Cancelled by system'
    OWNER_CANCELED = 'owner_canceled', 'Cancelled by owner'
    CLIENT_CANCELED = 'client_canceled', 'Cancelled by client'
    SHIPPED = 'shipped', 'Shipped'
    RECEIVED = 'received', 'Received'
    COMPLETE = 'complete', 'Complete'
    REFUND_REQUESTED = 'refund_requested', 'Refund requested'
    REFUNDED = 'refunded', 'Refunded'


CANCELLED_STATUSES = (
    OrderStatus.SYSTEM_CANCELED,
    OrderStatus.OWNER_CANCELED,
    OrderStatus.CLIENT_CANCELED,
)

# Gateway-reported authorization state -> Order status
GATEWAY_STATUS_MAP = {
    AuthorizationStatus.CANCELED: OrderStatus.SYSTEM_CANCELED,
    AuthorizationStatus.PAYMENT_FAILED: OrderStatus.PAYMENT_FAILED,
    AuthorizationStatus.SUCCEEDED: OrderStatus.PAID,
}

# Client leaves the Split entirely
EXITABLE_GATEWAY_STATUSES = (AuthorizationStatus.CANCELED,)
# Client becomes a full conversation participant
PROMOTABLE_GATEWAY_STATUSES = (AuthorizationStatus.SUCCEEDED,)
# Client drops back to read-only
DEMOTABLE_GATEWAY_STATUSES = (AuthorizationStatus.PAYMENT_FAILED,)

# Orders that gateway events may still move
AWAITING_PAYMENT_STATUSES = (OrderStatus.PAYMENT_PENDING, OrderStatus.PAYMENT_FAILED)


class Order(models.Model):
    """
    A client's reservation of seats on a Split, bound to one payment authorization.

    The ``client_name`` .. ``fee_amount`` fields are a snapshot taken at
    creation and are never refreshed from the Split or the users.
    """

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    client = models.ForeignKey('accounts.User', on_delete=models.PROTECT, related_name='orders')
    owner = models.ForeignKey('accounts.User', on_delete=models.PROTECT, related_name='received_orders')
    split = models.ForeignKey('splits.Split', on_delete=models.PROTECT, related_name='orders')

    num_seats = models.PositiveIntegerField(validators=[MinValueValidator(1)])
    status = models.CharField(
        max_length=20,
        choices=OrderStatus.choices,
        default=OrderStatus.PAYMENT_PENDING,
        db_index=True,
    )

    payment_intent = models.CharField(max_length=255, unique=True)
    payment_method = models.CharField(max_length=255, blank=True)
    shipping_address = models.TextField(blank=True)
    refunded = models.BooleanField(default=False)

    # Snapshot
    client_name = models.CharField(max_length=100)
    owner_name = models.CharField(max_length=100)
    split_title = models.CharField(max_length=200)
    split_description = models.TextField(blank=True)
    split_picture = models.URLField(max_length=500, blank=True)
    amount = models.PositiveIntegerField(help_text='Total charged, fee included, in minor currency units')
    fee_amount = models.PositiveIntegerField(help_text='Platform fee in minor currency units')

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = 'orders'
        indexes = [
            models.Index(fields=['split', 'status'], name='orders_split_status_idx'),
            models.Index(fields=['client', 'created_at'], name='orders_client_created_idx'),
            models.Index(fields=['owner', 'created_at'], name='orders_owner_created_idx'),
        ]
        constraints = [
            models.UniqueConstraint(
                fields=['split', 'client'],
                condition=~Q(status__in=CANCELLED_STATUSES),
                name='orders_one_open_order_per_client',
            ),
            models.CheckConstraint(
                condition=Q(num_seats__gte=1),
                name='orders_num_seats_positive',
            ),
        ]
        ordering = ['-created_at']

    def __str__(self):
        return f"{self.client_name} x{self.num_seats} on {self.split_title} ({self.status})"

    @property
    def is_cancelled(self):
        return self.status in CANCELLED_STATUSES
