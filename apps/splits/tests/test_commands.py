import pytest
from io import StringIO
from django.core.management import call_command

from apps.orders.models import Order, OrderStatus
from apps.splits.models import Split


@pytest.mark.django_db
class TestCreateSampleData:
    """Tests for the create_sample_data command."""

    def test_creates_splits_and_orders(self):
        out = StringIO()

        call_command('create_sample_data', stdout=out)

        assert Split.objects.count() == 3
        assert Order.objects.count() == 4
        assert Order.objects.filter(status=OrderStatus.PAYMENT_PENDING).count() == 1
        beans = Split.objects.get(title__startswith='Ethiopia')
        assert beans.num_seats == 7
        assert beans.places_left == 5
        assert 'Sample data created successfully!' in out.getvalue()

    def test_clear_and_recreate(self):
        call_command('create_sample_data', stdout=StringIO())

        call_command('create_sample_data', '--clear', stdout=StringIO())

        assert Split.objects.count() == 3
