from django.contrib import admin
from django.utils.html import format_html

from .models import Order, OrderStatus


@admin.register(Order)
class OrderAdmin(admin.ModelAdmin):
    """
    Admin interface for Orders.

    Orders change state only through the order services, so every field is
    read-only here.
    """

    list_display = [
        'split_title',
        'client_name',
        'owner_name',
        'num_seats',
        'status_badge',
        'amount',
        'refunded',
        'created_at',
    ]
    list_filter = ['status', 'refunded', 'created_at']
    search_fields = ['split_title', 'client_name', 'owner_name', 'payment_intent']
    readonly_fields = [field.name for field in Order._meta.fields]
    ordering = ['-created_at']

    def status_badge(self, obj):
        """Display order status as colored badge."""
        colors = {
            OrderStatus.PAYMENT_PENDING: ('#E5C49A', '#2C1810'),
            OrderStatus.PAYMENT_FAILED: ('#B85C5C', 'white'),
            OrderStatus.PAID: ('#6B8E5E', 'white'),
            OrderStatus.REFUNDED: ('#A47449', 'white'),
        }
        bg, fg = colors.get(obj.status, ('#ccc', '#666'))
        return format_html(
            '<span style="background: {}; color: {}; padding: 3px 8px; '
            'border-radius: 10px; font-size: 11px;">{}</span>',
            bg, fg, obj.get_status_display()
        )
    status_badge.short_description = 'Status'

    def has_add_permission(self, request):
        return False
