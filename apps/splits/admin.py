from django.contrib import admin
from django.utils.html import format_html

from .models import Split, SplitStatus


@admin.register(Split)
class SplitAdmin(admin.ModelAdmin):
    """
    Admin interface for Splits.

    Seat counters and status are read-only: they change only through the
    reservation engine and the cancellation services.
    """

    list_display = [
        'title',
        'type',
        'owner',
        'seats_display',
        'status_badge',
        'price',
        'expiration_date',
        'created_at',
    ]
    list_filter = ['type', 'status', 'shipping_type', 'created_at']
    search_fields = ['title', 'description', 'owner__email']
    readonly_fields = [
        'id',
        'num_places',
        'num_seats',
        'owner_seats',
        'places_left',
        'status',
        'cancel_reason',
        'created_at',
        'updated_at',
    ]
    raw_id_fields = ['owner']
    ordering = ['-created_at']

    fieldsets = (
        ('Split', {'fields': ('id', 'type', 'owner', 'title', 'description', 'picture', 'tags')}),
        ('Seats', {'fields': ('num_places', 'num_seats', 'owner_seats', 'places_left')}),
        ('Pricing', {'fields': ('price', 'regular_price', 'sale_price', 'split_prices')}),
        ('Lifecycle', {'fields': ('status', 'cancel_reason', 'expiration_date')}),
        ('Shipping', {'fields': ('shipping_type', 'shipping_details')}),
        ('Legacy', {'fields': ('legacy_url', 'legacy_id'), 'classes': ('collapse',)}),
        ('Timestamps', {'fields': ('created_at', 'updated_at'), 'classes': ('collapse',)}),
    )

    def seats_display(self, obj):
        return f"{obj.num_seats}/{obj.num_places}"
    seats_display.short_description = 'Seats'

    def status_badge(self, obj):
        """Display split status as colored badge."""
        colors = {
            SplitStatus.ACTIVE: ('#6B8E5E', 'white'),
            SplitStatus.COMPLETE: ('#A47449', 'white'),
            SplitStatus.CANCELLED: ('#B85C5C', 'white'),
            SplitStatus.EXPIRED: ('#E5C49A', '#2C1810'),
        }
        bg, fg = colors.get(obj.status, ('#ccc', '#666'))
        return format_html(
            '<span style="background: {}; color: {}; padding: 3px 8px; '
            'border-radius: 10px; font-size: 11px;">{}</span>',
            bg, fg, obj.get_status_display()
        )
    status_badge.short_description = 'Status'
