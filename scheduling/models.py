"""
Scheduling Models - Customers, employees and the cleaning tasks planned for them.

Task Status Flow:
    PLANNED -> IN_PROGRESS -> COMPLETED
    PLANNED/IN_PROGRESS -> CANCELLED
    COMPLETED and CANCELLED are terminal.
"""
from decimal import Decimal

from django.conf import settings
from django.core.validators import MinValueValidator
from django.db import models


class Customer(models.Model):
    """
    Customer receiving cleaning services.
    """

    class CleaningType(models.TextChoices):
        STANDARD = 'STANDARD', 'Standard'
        DEEP_CLEAN = 'DEEP_CLEAN', 'Dybdegående'
        OFFICE = 'OFFICE', 'Kontor'
        MOVE_OUT = 'MOVE_OUT', 'Flytterengøring'

    class Frequency(models.TextChoices):
        WEEKLY = 'WEEKLY', 'Ugentlig'
        BI_WEEKLY = 'BI_WEEKLY', 'Hver 14. dag'
        MONTHLY = 'MONTHLY', 'Månedlig'
        ONE_TIME = 'ONE_TIME', 'Engangs'

    name = models.CharField(max_length=200, db_index=True)
    address = models.CharField(max_length=300, blank=True, default='')
    phone = models.CharField(max_length=50, blank=True, default='')
    email = models.EmailField(blank=True, default='')
    key_location = models.CharField(max_length=200, blank=True, default='')
    alarm_code = models.CharField(max_length=50, blank=True, default='')
    cleaning_type = models.CharField(
        max_length=20,
        choices=CleaningType.choices,
        default=CleaningType.STANDARD
    )
    frequency = models.CharField(
        max_length=20,
        choices=Frequency.choices,
        default=Frequency.ONE_TIME
    )
    hourly_rate = models.DecimalField(
        max_digits=10,
        decimal_places=2,
        default=settings.DEFAULT_HOURLY_RATE,
        validators=[MinValueValidator(Decimal('0.00'))],
        help_text="Price per hour billed to this customer"
    )
    notes = models.TextField(blank=True, default='')
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ['-created_at']

    def __str__(self):
        return self.name


class Employee(models.Model):
    """
    Employee who can be assigned to tasks.
    """
    name = models.CharField(max_length=200, db_index=True)
    email = models.EmailField(blank=True, default='')
    phone = models.CharField(max_length=50, blank=True, default='')
    role = models.CharField(max_length=100, default='Rengøringsassistent')
    hourly_rate = models.DecimalField(
        max_digits=10,
        decimal_places=2,
        null=True,
        blank=True,
        help_text="Optional wage rate"
    )
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ['name']

    def __str__(self):
        return f"{self.name} ({self.role})"


class Task(models.Model):
    """
    A scheduled cleaning job for one customer.

    customer_name, customer_address and employee_name are copied at
    creation so lists render without joins.
    """

    class Status(models.TextChoices):
        PLANNED = 'PLANNED', 'Planlagt'
        IN_PROGRESS = 'IN_PROGRESS', 'I gang'
        COMPLETED = 'COMPLETED', 'Fuldført'
        CANCELLED = 'CANCELLED', 'Annulleret'

    customer = models.ForeignKey(
        Customer,
        on_delete=models.PROTECT,
        related_name='tasks'
    )
    employee = models.ForeignKey(
        Employee,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='tasks'
    )
    customer_name = models.CharField(max_length=200, blank=True, default='')
    customer_address = models.CharField(max_length=300, blank=True, default='')
    employee_name = models.CharField(max_length=200, blank=True, default='')
    scheduled_date = models.DateField(db_index=True)
    start_time = models.TimeField()
    estimated_duration_hours = models.DecimalField(
        max_digits=5,
        decimal_places=2,
        validators=[MinValueValidator(Decimal('0.01'))]
    )
    actual_duration_hours = models.DecimalField(
        max_digits=5,
        decimal_places=2,
        null=True,
        blank=True,
        validators=[MinValueValidator(Decimal('0.01'))]
    )
    status = models.CharField(
        max_length=20,
        choices=Status.choices,
        default=Status.PLANNED,
        db_index=True
    )
    notes = models.TextField(blank=True, default='')
    check_in_time = models.DateTimeField(null=True, blank=True)
    check_out_time = models.DateTimeField(null=True, blank=True)
    invoice_generated = models.BooleanField(default=False, db_index=True)
    invoiced_at = models.DateTimeField(null=True, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ['-scheduled_date', 'start_time']
        indexes = [
            models.Index(fields=['status', 'invoice_generated']),
            models.Index(fields=['customer', 'scheduled_date']),
        ]

    def __str__(self):
        return f"Task #{self.id} - {self.customer_name} {self.scheduled_date} ({self.status})"

    @property
    def billable_hours(self) -> Decimal:
        """Actual duration when recorded, otherwise the estimate."""
        if self.actual_duration_hours is not None:
            return self.actual_duration_hours
        return self.estimated_duration_hours

    @property
    def is_invoiceable(self) -> bool:
        return self.status == self.Status.COMPLETED and not self.invoice_generated


class BookingRequest(models.Model):
    """
    Inquiry from a prospective customer, submitted through the booking form.

    Status Flow:
        pending -> contacted -> converted_to_customer / rejected
        pending -> converted_to_customer / rejected
    """

    class Status(models.TextChoices):
        PENDING = 'pending', 'Afventer'
        CONTACTED = 'contacted', 'Kontaktet'
        CONVERTED = 'converted_to_customer', 'Konverteret'
        REJECTED = 'rejected', 'Afvist'

    name = models.CharField(max_length=200)
    phone = models.CharField(max_length=50)
    email = models.EmailField()
    address = models.CharField(max_length=300)
    zip_city = models.CharField(max_length=100, help_text="Postal code and city")
    sqm = models.PositiveIntegerField(null=True, blank=True, help_text="Home size in square meters")
    cleaning_type = models.CharField(
        max_length=20,
        choices=Customer.CleaningType.choices,
        default=Customer.CleaningType.STANDARD
    )
    desired_start_date = models.DateField()
    frequency_preference = models.CharField(
        max_length=20,
        choices=Customer.Frequency.choices,
        blank=True,
        default=''
    )
    message = models.TextField(blank=True, default='')
    status = models.CharField(
        max_length=30,
        choices=Status.choices,
        default=Status.PENDING,
        db_index=True
    )
    customer = models.ForeignKey(
        Customer,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='booking_requests',
        help_text="Customer created when the request was converted"
    )
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ['-created_at']

    def __str__(self):
        return f"Booking request #{self.id} - {self.name} ({self.status})"

    @property
    def full_address(self) -> str:
        return ', '.join(part for part in [self.address, self.zip_city] if part)


class ActivityLog(models.Model):
    """
    Dashboard feed of recent events. related_id points at the customer,
    task, employee or booking request the entry is about.
    """

    class Type(models.TextChoices):
        NEW_CUSTOMER = 'new_customer', 'Ny kunde'
        NEW_TASK = 'new_task', 'Ny opgave'
        TASK_UPDATED = 'task_updated', 'Opgave opdateret'
        NEW_EMPLOYEE = 'new_employee', 'Ny medarbejder'
        NEW_BOOKING_REQUEST = 'new_booking_request', 'Ny forespørgsel'

    type = models.CharField(max_length=30, choices=Type.choices, db_index=True)
    description = models.CharField(max_length=500)
    related_id = models.PositiveBigIntegerField(null=True, blank=True)
    created_at = models.DateTimeField(auto_now_add=True, db_index=True)

    class Meta:
        ordering = ['-created_at', '-id']

    def __str__(self):
        return f"{self.type}: {self.description}"
