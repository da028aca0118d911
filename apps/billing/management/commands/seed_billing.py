# apps/billing/management/commands/seed_billing.py
from decimal import Decimal
from django.core.management.base import BaseCommand
from django.db import transaction

from apps.billing.models import Plan, PaymentMethod, GrossOverride


PLANS = [
    ('Hibrid', Decimal('35.00')),
    ('Comum', Decimal('30.00')),
    ('Platinum', Decimal('35.00')),
    ('P2P', Decimal('35.00')),
]

PAYMENT_METHODS = ['Outros', 'Banco do Brasil', 'Caixa', 'Picpay', 'PagSeguro']

# PagSeguro settles less than the charged price for the two standard prices
GROSS_OVERRIDES = [
    ('PagSeguro', Decimal('35.00'), Decimal('32.85')),
    ('PagSeguro', Decimal('30.00'), Decimal('28.10')),
]


class Command(BaseCommand):
    help = "Create or update plans, payment methods and report gross overrides"

    @transaction.atomic
    def handle(self, *args, **options):
        for name, default_gross in PLANS:
            plan, created = Plan.objects.get_or_create(
                name=name,
                defaults={'default_gross_amount': default_gross}
            )
            if created:
                self.stdout.write(f"  + plan {plan.name}")

        methods = {}
        for name in PAYMENT_METHODS:
            method, created = PaymentMethod.objects.get_or_create(name=name)
            methods[name] = method
            if created:
                self.stdout.write(f"  + payment method {method.name}")

        for method_name, gross_value, substitute in GROSS_OVERRIDES:
            GrossOverride.objects.update_or_create(
                payment_method=methods[method_name],
                gross_value=gross_value,
                defaults={'substitute_value': substitute}
            )

        self.stdout.write(
            self.style.SUCCESS(
                f"Seeded {len(PLANS)} plans, {len(PAYMENT_METHODS)} payment methods "
                f"and {len(GROSS_OVERRIDES)} gross overrides"
            )
        )
