from decimal import Decimal

import django.core.validators
import django.db.models.deletion
from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = []

    operations = [
        migrations.CreateModel(
            name='PaymentMethod',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
                ('name', models.CharField(max_length=100, unique=True)),
                ('is_active', models.BooleanField(db_index=True, default=True)),
            ],
            options={
                'ordering': ['name'],
                'abstract': False,
            },
        ),
        migrations.CreateModel(
            name='Plan',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
                ('name', models.CharField(max_length=100, unique=True)),
                ('is_active', models.BooleanField(db_index=True, default=True)),
                ('default_gross_amount', models.DecimalField(blank=True, decimal_places=2, help_text='Price suggested for new clients of this plan', max_digits=10, null=True, validators=[django.core.validators.MinValueValidator(Decimal('0.01'))])),
            ],
            options={
                'ordering': ['name'],
                'abstract': False,
            },
        ),
        migrations.CreateModel(
            name='PlanPaymentMethodDiscount',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
                ('discount', models.DecimalField(decimal_places=4, default=Decimal('0'), help_text='Fraction between 0 and 1', max_digits=5, validators=[django.core.validators.MinValueValidator(Decimal('0')), django.core.validators.MaxValueValidator(Decimal('1'))])),
                ('payment_method', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='discounts', to='billing.paymentmethod')),
                ('plan', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='discounts', to='billing.plan')),
            ],
            options={
                'constraints': [models.UniqueConstraint(fields=('plan', 'payment_method'), name='unique_discount_per_plan_payment_method')],
            },
        ),
        migrations.CreateModel(
            name='GrossOverride',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
                ('gross_value', models.DecimalField(decimal_places=2, max_digits=10)),
                ('substitute_value', models.DecimalField(decimal_places=2, max_digits=10, validators=[django.core.validators.MinValueValidator(Decimal('0.00'))])),
                ('payment_method', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='gross_overrides', to='billing.paymentmethod')),
            ],
            options={
                'constraints': [models.UniqueConstraint(fields=('payment_method', 'gross_value'), name='unique_override_per_payment_method_gross')],
            },
        ),
    ]
