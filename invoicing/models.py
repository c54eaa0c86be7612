"""
Invoice Models - billing documents derived from completed tasks.

Invoice Status Flow:
    draft -> sent -> paid
    draft -> paid
    sent -> overdue -> paid
"""
from decimal import Decimal

from django.conf import settings
from django.db import models

from scheduling.models import Customer, Task

CENT = Decimal('0.01')


class Invoice(models.Model):
    """
    Invoice for exactly one task.

    Customer name/address, hours, hourly rate and total are a snapshot
    taken when the invoice is created and are never recomputed; later
    edits to the customer do not reach existing invoices. total_amount
    is VAT inclusive.
    """

    class Status(models.TextChoices):
        DRAFT = 'draft', 'Kladde'
        SENT = 'sent', 'Sendt'
        PAID = 'paid', 'Betalt'
        OVERDUE = 'overdue', 'Forfalden'

    invoice_number = models.CharField(
        max_length=20,
        unique=True,
        help_text="F-YYYYMMDD-NNNN"
    )
    # One-to-one: the database refuses a second invoice for the same task.
    task = models.OneToOneField(
        Task,
        on_delete=models.PROTECT,
        related_name='invoice'
    )
    customer = models.ForeignKey(
        Customer,
        on_delete=models.SET_NULL,
        null=True,
        related_name='invoices'
    )
    customer_name = models.CharField(max_length=200)
    customer_address = models.CharField(max_length=300, blank=True, default='')
    task_date = models.DateField()
    hours = models.DecimalField(max_digits=5, decimal_places=2)
    hourly_rate = models.DecimalField(max_digits=10, decimal_places=2)
    total_amount = models.DecimalField(max_digits=12, decimal_places=2)
    status = models.CharField(
        max_length=10,
        choices=Status.choices,
        default=Status.DRAFT,
        db_index=True
    )
    issued_date = models.DateField()
    due_date = models.DateField(db_index=True)
    paid_date = models.DateField(null=True, blank=True)
    notes = models.TextField(blank=True, default='')
    created_at = models.DateTimeField(auto_now_add=True, db_index=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ['-created_at']
        indexes = [
            models.Index(fields=['status', 'due_date']),
        ]

    def __str__(self):
        return f"{self.invoice_number} - {self.customer_name} ({self.status})"

    @property
    def vat_amount(self) -> Decimal:
        return (self.total_amount * settings.INVOICE_VAT_RATE).quantize(CENT)

    @property
    def subtotal_amount(self) -> Decimal:
        """Amount before VAT."""
        return self.total_amount - self.vat_amount

    @property
    def is_paid(self) -> bool:
        return self.status == self.Status.PAID

    @property
    def document_filename(self) -> str:
        return f"Faktura_{self.invoice_number}.pdf"
