# Generated manually for the orders app

import uuid
from django.conf import settings
from django.core.validators import MinValueValidator
from django.db import migrations, models
import django.db.models.deletion


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        ('splits', '0001_initial'),
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
    ]

    operations = [
        migrations.CreateModel(
            name='Order',
            fields=[
                ('id', models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ('num_seats', models.PositiveIntegerField(validators=[MinValueValidator(1)])),
                ('status', models.CharField(choices=[('payment_pending', 'Payment pending'), ('payment_failed', 'Payment failed'), ('paid', 'Paid'), ('system_canceled', 'Cancelled by system'), ('owner_canceled', 'Cancelled by owner'), ('client_canceled', 'Cancelled by client'), ('shipped', 'Shipped'), ('received', 'Received'), ('complete', 'Complete'), ('refund_requested', 'Refund requested'), ('refunded', 'Refunded')], db_index=True, default='payment_pending', max_length=20)),
                ('payment_intent', models.CharField(max_length=255, unique=True)),
                ('payment_method', models.CharField(blank=True, max_length=255)),
                ('shipping_address', models.TextField(blank=True)),
                ('refunded', models.BooleanField(default=False)),
                ('client_name', models.CharField(max_length=100)),
                ('owner_name', models.CharField(max_length=100)),
                ('split_title', models.CharField(max_length=200)),
                ('split_description', models.TextField(blank=True)),
                ('split_picture', models.URLField(blank=True, max_length=500)),
                ('amount', models.PositiveIntegerField(help_text='Total charged, fee included, in minor currency units')),
                ('fee_amount', models.PositiveIntegerField(help_text='Platform fee in minor currency units')),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
                ('client', models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name='orders', to=settings.AUTH_USER_MODEL)),
                ('owner', models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name='received_orders', to=settings.AUTH_USER_MODEL)),
                ('split', models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name='orders', to='splits.split')),
            ],
            options={
                'db_table': 'orders',
                'ordering': ['-created_at'],
            },
        ),
        migrations.AddIndex(
            model_name='order',
            index=models.Index(fields=['split', 'status'], name='orders_split_status_idx'),
        ),
        migrations.AddIndex(
            model_name='order',
            index=models.Index(fields=['client', 'created_at'], name='orders_client_created_idx'),
        ),
        migrations.AddIndex(
            model_name='order',
            index=models.Index(fields=['owner', 'created_at'], name='orders_owner_created_idx'),
        ),
        migrations.AddConstraint(
            model_name='order',
            constraint=models.UniqueConstraint(condition=models.Q(('status__in', ['system_canceled', 'owner_canceled', 'client_canceled']), _negated=True), fields=('split', 'client'), name='orders_one_open_order_per_client'),
        ),
        migrations.AddConstraint(
            model_name='order',
            constraint=models.CheckConstraint(condition=models.Q(('num_seats__gte', 1)), name='orders_num_seats_positive'),
        ),
    ]
