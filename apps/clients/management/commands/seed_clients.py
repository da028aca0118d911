# apps/clients/management/commands/seed_clients.py
from django.core.management import call_command
from django.core.management.base import BaseCommand
from faker import Faker
import random
from datetime import timedelta
from decimal import Decimal

from apps.billing.models import Plan, PaymentMethod
from apps.clients.lifecycle import today
from apps.clients.models import Client
from apps.clients.services import ClientService
from apps.clients.store import DjangoClientStore


class Command(BaseCommand):
    help = "Seed the database with random clients and payment histories for local development"

    def add_arguments(self, parser):
        parser.add_argument('--count', type=int, default=30, help='Number of clients to create')
        parser.add_argument('--payments', type=int, default=4, help='Maximum payments per client')
        parser.add_argument('--clear', action='store_true', help='Clear existing clients before seeding')

    def handle(self, *args, **options):
        fake = Faker('pt_BR')
        service = ClientService(DjangoClientStore())

        if options['clear']:
            self.stdout.write("Clearing existing clients...")
            Client.objects.all().delete()

        if not Plan.objects.filter(is_active=True).exists():
            call_command('seed_billing', stdout=self.stdout)

        plans = list(Plan.objects.filter(is_active=True))
        methods = list(PaymentMethod.objects.filter(is_active=True))
        current_day = today()

        self.stdout.write(f"Creating {options['count']} clients...")

        created = 0
        for _ in range(options['count']):
            plan = random.choice(plans)
            method = random.choice(methods)
            # Spread due dates so both active and lapsed clients show up
            due_date = current_day + timedelta(days=random.randint(-60, 30))

            client = service.create_client({
                'full_name': fake.name(),
                'email': fake.unique.email(),
                'phone': fake.phone_number(),
                'plan_id': plan.pk,
                'payment_method_id': method.pk,
                'due_date': due_date,
                'observations': fake.sentence() if random.random() < 0.3 else None,
                'username': fake.unique.user_name(),
            })

            for months_back in range(random.randint(0, options['payments'])):
                paid_on = fake.date_time_between(
                    start_date=f'-{months_back + 1}M',
                    end_date=f'-{months_back}M' if months_back else 'now',
                )
                service.append_payment(client.pk, {
                    'payment_date': paid_on,
                    'gross': client.gross_amount,
                    'net': client.net_amount,
                    'payment_method_id': random.choice([None, method.pk]),
                })
            created += 1

        self.stdout.write(self.style.SUCCESS(f"Created {created} clients"))
