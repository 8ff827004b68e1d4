# Generated manually for the splits app

import uuid
from decimal import Decimal
from django.conf import settings
from django.core.validators import MinValueValidator
from django.db import migrations, models
import django.db.models.deletion


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
    ]

    operations = [
        migrations.CreateModel(
            name='Split',
            fields=[
                ('id', models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ('type', models.CharField(choices=[('APP', 'App'), ('LEGACY', 'Legacy')], db_index=True, default='APP', max_length=10)),
                ('title', models.CharField(max_length=200)),
                ('description', models.TextField(blank=True)),
                ('tags', models.JSONField(blank=True, default=list)),
                ('category_ids', models.JSONField(blank=True, default=list)),
                ('category_names', models.JSONField(blank=True, default=list)),
                ('picture', models.URLField(blank=True, max_length=500)),
                ('num_places', models.PositiveIntegerField(default=1)),
                ('num_seats', models.PositiveIntegerField(default=0)),
                ('owner_seats', models.PositiveIntegerField(default=0, editable=False)),
                ('places_left', models.IntegerField(default=1)),
                ('price', models.DecimalField(decimal_places=2, max_digits=10, validators=[MinValueValidator(Decimal('0.00'))])),
                ('regular_price', models.DecimalField(blank=True, decimal_places=2, max_digits=10, null=True)),
                ('sale_price', models.DecimalField(blank=True, decimal_places=2, max_digits=10, null=True)),
                ('split_prices', models.JSONField(blank=True, default=list)),
                ('status', models.CharField(choices=[('ACTIVE', 'Active'), ('COMPLETE', 'Complete'), ('CANCELLED', 'Cancelled'), ('EXPIRED', 'Expired')], db_index=True, default='ACTIVE', max_length=12)),
                ('cancel_reason', models.TextField(blank=True)),
                ('expiration_date', models.DateTimeField(blank=True, db_index=True, null=True)),
                ('shipping_type', models.CharField(blank=True, choices=[('INPERSON', 'In person'), ('SHIPPING', 'Shipping'), ('VIRTUAL', 'Virtual')], max_length=10)),
                ('shipping_details', models.TextField(blank=True)),
                ('legacy_url', models.URLField(blank=True, max_length=500)),
                ('legacy_id', models.PositiveIntegerField(blank=True, db_index=True, null=True)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
                ('owner', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='owned_splits', to=settings.AUTH_USER_MODEL)),
            ],
            options={
                'db_table': 'splits',
                'ordering': ['-created_at'],
            },
        ),
        migrations.AddIndex(
            model_name='split',
            index=models.Index(fields=['type', 'status', 'expiration_date'], name='splits_type_status_exp_idx'),
        ),
        migrations.AddIndex(
            model_name='split',
            index=models.Index(fields=['owner', 'created_at'], name='splits_owner_created_idx'),
        ),
        migrations.AddConstraint(
            model_name='split',
            constraint=models.CheckConstraint(condition=models.Q(('type', 'LEGACY'), ('places_left__gte', 0), _connector='OR'), name='splits_app_places_left_non_negative'),
        ),
        migrations.AddConstraint(
            model_name='split',
            constraint=models.CheckConstraint(condition=models.Q(('type', 'LEGACY'), ('places_left', models.F('num_places') - models.F('num_seats')), _connector='OR'), name='splits_app_seat_accounting'),
        ),
        migrations.AddConstraint(
            model_name='split',
            constraint=models.CheckConstraint(condition=models.Q(('cancel_reason', ''), ('status__in', ['CANCELLED', 'EXPIRED']), _connector='OR'), name='splits_cancel_reason_only_when_stopped'),
        ),
    ]
