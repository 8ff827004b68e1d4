"""
Management command to create sample data for trying out the API.

Usage:
    python manage.py create_sample_data

This creates:
- 4 users (admin, alice, bob, charlie); alice and bob can own Splits
- 3 APP Splits, one of them close to expiring
- Paid and pending Orders (only with the fake payment gateway)
"""

from datetime import timedelta
from decimal import Decimal

from django.core.management.base import BaseCommand
from django.db import transaction
from django.utils import timezone

from apps.accounts.models import User
from apps.orders.models import Order
from apps.orders.services import create_order
from apps.payments.gateway import AuthorizationStatus, FakeGateway, get_gateway
from apps.splits.models import ShippingType, Split
from apps.splits.services import create_split


class Command(BaseCommand):
    help = 'Create sample data for testing the API'

    def add_arguments(self, parser):
        parser.add_argument(
            '--clear',
            action='store_true',
            help='Clear existing data before creating new sample data',
        )

    @transaction.atomic
    def handle(self, *args, **options):
        if options['clear']:
            self.stdout.write('Clearing existing data...')
            self.clear_data()

        self.stdout.write('Creating sample data...')

        users = self.create_users()
        splits = self.create_splits(users)
        self.create_orders(users, splits)

        self.stdout.write(self.style.SUCCESS('Sample data created successfully!'))
        self.stdout.write('')
        self.stdout.write('Test accounts:')
        self.stdout.write('  admin@example.com / admin123 (superuser)')
        self.stdout.write('  alice@example.com / password123 (split owner)')
        self.stdout.write('  bob@example.com / password123 (split owner)')
        self.stdout.write('  charlie@example.com / password123')

    def clear_data(self):
        """Clear all marketplace data from the database."""
        Order.objects.all().delete()
        # Conversations, participants and messages cascade from the Split
        Split.objects.all().delete()
        User.objects.filter(is_superuser=False).delete()
        User.objects.filter(email='admin@example.com').delete()

    def create_users(self):
        """Create test users."""
        self.stdout.write('  Creating users...')

        specs = [
            ('admin', 'admin@example.com', 'Admin User', 'admin123',
             {'is_staff': True, 'is_superuser': True}),
            ('alice', 'alice@example.com', 'Alice Roaster', 'password123',
             {'stripe_account_id': 'acct_sample_alice', 'stripe_customer_id': 'cus_sample_alice'}),
            ('bob', 'bob@example.com', 'Bob Bulk', 'password123',
             {'stripe_account_id': 'acct_sample_bob', 'stripe_customer_id': 'cus_sample_bob'}),
            ('charlie', 'charlie@example.com', 'Charlie Client', 'password123',
             {'stripe_customer_id': 'cus_sample_charlie'}),
        ]

        users = {}
        for key, email, display_name, password, extra in specs:
            user, _ = User.objects.get_or_create(
                email=email,
                defaults={'display_name': display_name, **extra},
            )
            user.set_password(password)
            user.save()
            users[key] = user

        return users

    def create_splits(self, users):
        """Create APP Splits through the split services."""
        self.stdout.write('  Creating splits...')

        now = timezone.now()
        splits = {
            'beans': create_split(
                owner=users['alice'],
                title='Ethiopia Yirgacheffe, 12kg green beans',
                description='Washed, grade 1. Split into 12 one-kilo bags.',
                num_places=12,
                num_seats=2,
                price=Decimal('240.00'),
                tags=['coffee', 'green-beans'],
                shipping_type=ShippingType.SHIPPING,
                shipping_details='Tracked parcel, shipped within a week of closing',
                expiration_date=now + timedelta(days=14),
            ),
            'grinder': create_split(
                owner=users['bob'],
                title='Commercial grinder burr set',
                num_places=4,
                price=Decimal('180.00'),
                shipping_type=ShippingType.INPERSON,
                shipping_details='Pick up at the roastery',
                expiration_date=now + timedelta(days=4, hours=12),
            ),
            'course': create_split(
                owner=users['alice'],
                title='Online cupping course, group licence',
                num_places=6,
                num_seats=1,
                price=Decimal('300.00'),
                shipping_type=ShippingType.VIRTUAL,
                expiration_date=now + timedelta(hours=20),
            ),
        }

        self.stdout.write(f'    Created {len(splits)} splits')
        return splits

    def create_orders(self, users, splits):
        """Create Orders against fake payment authorizations."""
        self.stdout.write('  Creating orders...')

        gateway = get_gateway()
        if not isinstance(gateway, FakeGateway):
            self.stdout.write(self.style.WARNING(
                '    Skipped: orders need the fake payment gateway (PAYMENT_GATEWAY_BACKEND=fake)'
            ))
            return

        placements = [
            (users['charlie'], splits['beans'], 3, AuthorizationStatus.SUCCEEDED),
            (users['bob'], splits['beans'], 2, AuthorizationStatus.PROCESSING),
            (users['charlie'], splits['grinder'], 1, AuthorizationStatus.SUCCEEDED),
            (users['alice'], splits['grinder'], 2, AuthorizationStatus.SUCCEEDED),
        ]

        created = 0
        for client, split, num_seats, auth_status in placements:
            authorization = gateway.add_authorization(status=auth_status)
            result = create_order(
                client=client,
                split_id=split.id,
                payment_intent=authorization.id,
                num_seats=num_seats,
                shipping_address=f'{client.get_display_name()}, 1 Sample Street',
            )
            if result.success:
                created += 1
            else:
                self.stdout.write(self.style.WARNING(f'    {split.title}: {result.message}'))

        self.stdout.write(f'    Created {created} orders')
