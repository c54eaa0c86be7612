"""
Management command to seed the database with sample data.

Generates:
- Customers with Danish addresses
- Employees
- Tasks spread over the past and coming weeks (some completed)
- Inventory items across all categories

Usage:
    python manage.py seed_data
    python manage.py seed_data --clear  # Clear existing data first
"""
import random
from datetime import time, timedelta
from decimal import Decimal

from django.conf import settings
from django.core.management.base import BaseCommand
from django.db import transaction
from django.utils import timezone

from scheduling.models import Customer, Employee, Task, BookingRequest, ActivityLog
from inventory.models import InventoryItem


class Command(BaseCommand):
    help = 'Seed the database with sample customers, employees, tasks and inventory'

    def add_arguments(self, parser):
        parser.add_argument(
            '--clear',
            action='store_true',
            help='Clear existing data before seeding',
        )
        parser.add_argument(
            '--customers',
            type=int,
            default=30,
            help='Number of customers to create (default: 30)',
        )
        parser.add_argument(
            '--employees',
            type=int,
            default=6,
            help='Number of employees to create (default: 6)',
        )
        parser.add_argument(
            '--tasks',
            type=int,
            default=120,
            help='Number of tasks to create (default: 120)',
        )

    def handle(self, *args, **options):
        if options['clear']:
            self.stdout.write('Clearing existing data...')
            self._clear_data()

        self.stdout.write('Starting database seeding...')

        with transaction.atomic():
            customers = self._create_customers(options['customers'])
            employees = self._create_employees(options['employees'])
            self._create_tasks(options['tasks'], customers, employees)
            self._create_inventory()

        self.stdout.write(self.style.SUCCESS('Database seeding completed successfully!'))

    def _clear_data(self):
        """
        Clear seeded data. The inventory ledger is append-only, so
        inventory rows are left alone.
        """
        from invoicing.models import Invoice

        BookingRequest.objects.all().delete()
        ActivityLog.objects.all().delete()
        Invoice.objects.all().delete()
        Task.objects.all().delete()
        Employee.objects.all().delete()
        Customer.objects.all().delete()

        self.stdout.write(self.style.WARNING('Customers, employees, tasks, invoices, booking requests and activity cleared.'))

    def _create_customers(self, count):
        """Create sample customers."""
        first_names = [
            'Anne', 'Lars', 'Mette', 'Søren', 'Camilla', 'Jens', 'Louise',
            'Mads', 'Sofie', 'Henrik', 'Ida', 'Rasmus', 'Line', 'Peter'
        ]
        last_names = [
            'Jensen', 'Nielsen', 'Hansen', 'Pedersen', 'Andersen',
            'Christensen', 'Larsen', 'Sørensen', 'Rasmussen', 'Petersen'
        ]
        streets = [
            'Strandvejen', 'Vesterbrogade', 'Nørrebrogade', 'Amagerbrogade',
            'Frederiksberg Allé', 'Jagtvej', 'Østerbrogade', 'Gammel Kongevej'
        ]

        customers = []
        for _ in range(count):
            name = f"{random.choice(first_names)} {random.choice(last_names)}"
            customers.append(Customer(
                name=name,
                address=f"{random.choice(streets)} {random.randint(1, 200)}, {random.randint(1000, 2990)} København",
                phone=f"+45 {random.randint(20000000, 99999999)}",
                email=f"{name.lower().replace(' ', '.').replace('ø', 'oe')}@example.dk",
                cleaning_type=random.choice(Customer.CleaningType.values),
                frequency=random.choice(Customer.Frequency.values),
                hourly_rate=settings.DEFAULT_HOURLY_RATE,
            ))

        Customer.objects.bulk_create(customers)
        customers = list(Customer.objects.all())
        self.stdout.write(self.style.SUCCESS(f'Created {count} customers'))
        return customers

    def _create_employees(self, count):
        """Create sample employees."""
        names = ['Rawan', 'Jonas', 'Maria', 'Ahmed', 'Emma', 'Oliver', 'Freja', 'William']
        roles = ['Rengøringsassistent', 'Rengøringsassistent', 'Teamleder']

        employees = [
            Employee(
                name=f"{names[i % len(names)]} {i + 1}",
                role=random.choice(roles),
                phone=f"+45 {random.randint(20000000, 99999999)}",
            )
            for i in range(count)
        ]
        Employee.objects.bulk_create(employees)
        employees = list(Employee.objects.all())
        self.stdout.write(self.style.SUCCESS(f'Created {count} employees'))
        return employees

    def _create_tasks(self, count, customers, employees):
        """Create tasks from three weeks ago to three weeks ahead."""
        today = timezone.localdate()
        tasks = []

        for _ in range(count):
            customer = random.choice(customers)
            employee = random.choice(employees) if employees and random.random() > 0.1 else None
            scheduled = today + timedelta(days=random.randint(-21, 21))
            estimated = Decimal(random.choice(['2.00', '2.50', '3.00', '4.00', '6.00']))

            if scheduled < today:
                status = random.choice([Task.Status.COMPLETED] * 9 + [Task.Status.CANCELLED])
            elif scheduled == today:
                status = random.choice([Task.Status.PLANNED, Task.Status.IN_PROGRESS])
            else:
                status = Task.Status.PLANNED

            actual = None
            if status == Task.Status.COMPLETED and random.random() > 0.5:
                actual = estimated + Decimal(random.choice(['-0.50', '0.00', '0.50', '1.00']))

            tasks.append(Task(
                customer=customer,
                employee=employee,
                customer_name=customer.name,
                customer_address=customer.address,
                employee_name=employee.name if employee else '',
                scheduled_date=scheduled,
                start_time=time(random.choice([8, 9, 10, 12, 13]), random.choice([0, 30])),
                estimated_duration_hours=estimated,
                actual_duration_hours=actual,
                status=status,
            ))

        Task.objects.bulk_create(tasks)
        self.stdout.write(self.style.SUCCESS(f'Created {count} tasks'))

    def _create_inventory(self):
        """Create sample inventory items with baseline stock."""
        catalogue = [
            ('Universalrengøring 1L', InventoryItem.Category.CLEANING_SUPPLIES, 'flaske', '24.95'),
            ('Glasrens 750ml', InventoryItem.Category.CLEANING_SUPPLIES, 'flaske', '19.95'),
            ('Kalkfjerner 1L', InventoryItem.Category.CLEANING_SUPPLIES, 'flaske', '32.50'),
            ('Gulvsæbe 5L', InventoryItem.Category.CLEANING_SUPPLIES, 'dunk', '129.00'),
            ('Mikrofiberklude', InventoryItem.Category.CONSUMABLES, 'pakke', '49.00'),
            ('Affaldsposer 50L', InventoryItem.Category.CONSUMABLES, 'rulle', '29.00'),
            ('Engangshandsker', InventoryItem.Category.CONSUMABLES, 'æske', '59.00'),
            ('Støvsuger', InventoryItem.Category.EQUIPMENT, 'stk', '1899.00'),
            ('Moppesæt', InventoryItem.Category.EQUIPMENT, 'stk', '349.00'),
            ('Trappestige', InventoryItem.Category.EQUIPMENT, 'stk', '599.00'),
            ('Arbejdstøj', InventoryItem.Category.OTHER, 'sæt', '249.00'),
        ]

        created = 0
        for name, category, unit, price in catalogue:
            _, was_created = InventoryItem.objects.get_or_create(
                item_name=name,
                defaults={
                    'category': category,
                    'unit': unit,
                    'price_per_unit': Decimal(price),
                    'quantity': Decimal(random.randint(0, 40)),
                    'minimum_quantity': Decimal(random.choice([2, 5, 10])),
                    'supplier': random.choice(['Nilfisk', 'Abena', 'Kiilto', '']),
                }
            )
            if was_created:
                created += 1

        self.stdout.write(self.style.SUCCESS(f'Created {created} inventory items'))
