"""
Invoice Service Layer - turning completed tasks into frozen invoices.

create_invoice_from_task:
1. Lock the task row with select_for_update()
2. Refuse tasks that are not COMPLETED or already invoiced
3. Snapshot customer, hours and rate; compute total, number and due date
4. Insert the invoice and flag the task as invoiced in the same transaction
5. After commit, queue the notification task

The invoice table's one-to-one task column backs step 2 up when two
callers race on the same task.
"""
import logging
import random
from datetime import date, timedelta
from decimal import Decimal
from typing import Dict, Optional, Tuple

from django.conf import settings
from django.db import transaction, DatabaseError, IntegrityError
from django.db.models import Count, Sum, Q
from django.utils import timezone

from core.exceptions import (
    NotFoundError,
    ValidationError,
    AlreadyInvoicedError,
    InvalidTransitionError,
    PersistenceError,
)
from scheduling.models import Customer, Task
from .models import Invoice, CENT

logger = logging.getLogger(__name__)

INVOICE_NUMBER_ATTEMPTS = 20

INVOICE_TRANSITIONS = {
    Invoice.Status.DRAFT: {Invoice.Status.SENT, Invoice.Status.PAID},
    Invoice.Status.SENT: {Invoice.Status.PAID, Invoice.Status.OVERDUE},
    Invoice.Status.OVERDUE: {Invoice.Status.PAID},
    Invoice.Status.PAID: set(),
}


def vat_breakdown(total: Decimal) -> Tuple[Decimal, Decimal]:
    """
    Split a VAT-inclusive total into (subtotal, vat) for display.

    >>> vat_breakdown(Decimal('1047.00'))
    (Decimal('837.60'), Decimal('209.40'))
    """
    vat = (total * settings.INVOICE_VAT_RATE).quantize(CENT)
    return total - vat, vat


def compute_due_date(issued_date: date) -> date:
    return issued_date + timedelta(days=settings.INVOICE_DUE_DAYS)


def generate_invoice_number(issued_date: date) -> str:
    """
    Draw an unused F-YYYYMMDD-NNNN number for the given issue date.

    Raises:
        PersistenceError: If no free number was found
    """
    prefix = f"F-{issued_date.strftime('%Y%m%d')}-"
    for _ in range(INVOICE_NUMBER_ATTEMPTS):
        candidate = f"{prefix}{random.randint(0, 9999):04d}"
        if not Invoice.objects.filter(invoice_number=candidate).exists():
            return candidate
    raise PersistenceError(f"Could not allocate an invoice number for {issued_date}")


def create_invoice_from_task(task_id: int, today: Optional[date] = None) -> Invoice:
    """
    Create the invoice for a completed task.

    Args:
        task_id: ID of the task to bill
        today: Issue date, defaults to the current local date

    Returns:
        The created Invoice

    Raises:
        NotFoundError: If the task or its customer doesn't exist
        ValidationError: If the task is not completed
        AlreadyInvoicedError: If the task already has an invoice
        PersistenceError: If the database call fails
    """
    today = today or timezone.localdate()

    try:
        with transaction.atomic():
            try:
                task = Task.objects.select_for_update().get(id=task_id)
            except Task.DoesNotExist:
                raise NotFoundError("Task or customer not found")

            customer = Customer.objects.filter(id=task.customer_id).first()
            if customer is None:
                raise NotFoundError("Task or customer not found")

            if task.status != Task.Status.COMPLETED:
                raise ValidationError(
                    f"Task {task_id} is {task.status}, only completed tasks can be invoiced"
                )
            if task.invoice_generated or Invoice.objects.filter(task_id=task.id).exists():
                raise AlreadyInvoicedError(task_id)

            hours = task.billable_hours
            hourly_rate = customer.hourly_rate
            total_amount = (hours * hourly_rate).quantize(CENT)

            invoice = Invoice.objects.create(
                invoice_number=generate_invoice_number(today),
                task=task,
                customer=customer,
                customer_name=customer.name,
                customer_address=customer.address,
                task_date=task.scheduled_date,
                hours=hours,
                hourly_rate=hourly_rate,
                total_amount=total_amount,
                status=Invoice.Status.DRAFT,
                issued_date=today,
                due_date=compute_due_date(today),
            )

            task.invoice_generated = True
            task.invoiced_at = timezone.now()
            task.save(update_fields=['invoice_generated', 'invoiced_at', 'updated_at'])

            transaction.on_commit(lambda: _queue_invoice_notification(invoice.id))
    except IntegrityError as e:
        if Invoice.objects.filter(task_id=task_id).exists():
            raise AlreadyInvoicedError(task_id) from e
        logger.error(f"Integrity error creating invoice for task #{task_id}: {e}")
        raise PersistenceError("Could not create invoice, please try again") from e
    except DatabaseError as e:
        logger.error(f"Database error creating invoice for task #{task_id}: {e}")
        raise PersistenceError("Could not create invoice, please try again") from e

    logger.info(
        f"Invoice {invoice.invoice_number} created for task #{task_id}: "
        f"{invoice.hours}h x {invoice.hourly_rate} = {invoice.total_amount}"
    )
    return invoice


def _queue_invoice_notification(invoice_id: int) -> None:
    try:
        from .tasks import send_invoice_notification
        send_invoice_notification.delay(invoice_id)
        logger.info(f"Triggered notification task for invoice #{invoice_id}")
    except Exception as e:
        # Don't fail the invoice if task queuing fails
        logger.error(f"Failed to queue invoice notification: {e}")


def update_invoice_status(invoice_id: int, new_status: str, today: Optional[date] = None) -> Invoice:
    """
    Move an invoice along its lifecycle. Entering paid records the paid date.

    Raises:
        NotFoundError: If the invoice doesn't exist
        ValidationError: If new_status is not a known status
        InvalidTransitionError: If the transition table forbids the move
    """
    if new_status not in Invoice.Status.values:
        raise ValidationError(f"Unknown invoice status: {new_status}")
    today = today or timezone.localdate()

    try:
        with transaction.atomic():
            try:
                invoice = Invoice.objects.select_for_update().get(id=invoice_id)
            except Invoice.DoesNotExist:
                raise NotFoundError(f"Invoice {invoice_id} not found")

            if new_status not in INVOICE_TRANSITIONS[invoice.status]:
                raise InvalidTransitionError('invoice', invoice.status, new_status)

            invoice.status = new_status
            if new_status == Invoice.Status.PAID:
                invoice.paid_date = today
            invoice.save(update_fields=['status', 'paid_date', 'updated_at'])
    except DatabaseError as e:
        logger.error(f"Database error updating invoice #{invoice_id}: {e}")
        raise PersistenceError("Could not update invoice, please try again") from e

    logger.info(f"Invoice {invoice.invoice_number} is now {new_status}")
    return invoice


def delete_invoice(invoice_id: int) -> None:
    """
    Delete a draft invoice and release its task for re-invoicing.

    Invoices that have left draft are kept.

    Raises:
        NotFoundError: If the invoice doesn't exist
        InvalidTransitionError: If the invoice is not a draft
    """
    try:
        with transaction.atomic():
            try:
                invoice = Invoice.objects.select_for_update().get(id=invoice_id)
            except Invoice.DoesNotExist:
                raise NotFoundError(f"Invoice {invoice_id} not found")

            if invoice.status != Invoice.Status.DRAFT:
                raise InvalidTransitionError('invoice', invoice.status, 'deleted')

            task_id = invoice.task_id
            number = invoice.invoice_number
            invoice.delete()
            Task.objects.filter(id=task_id).update(
                invoice_generated=False,
                invoiced_at=None,
                updated_at=timezone.now()
            )
    except DatabaseError as e:
        logger.error(f"Database error deleting invoice #{invoice_id}: {e}")
        raise PersistenceError("Could not delete invoice, please try again") from e

    logger.info(f"Deleted draft invoice {number}; task #{task_id} can be invoiced again")


def mark_overdue_invoices(today: Optional[date] = None) -> int:
    """
    Move sent invoices past their due date to overdue.

    An invoice that changes status while the sweep runs (paid in the
    meantime) is skipped. Returns the number of invoices moved.
    """
    today = today or timezone.localdate()
    overdue_ids = list(
        Invoice.objects.filter(
            status=Invoice.Status.SENT,
            due_date__lt=today
        ).values_list('id', flat=True)
    )
    moved = 0
    for invoice_id in overdue_ids:
        try:
            update_invoice_status(invoice_id, Invoice.Status.OVERDUE, today=today)
        except (InvalidTransitionError, NotFoundError) as e:
            logger.info(f"Skipped overdue marking for invoice #{invoice_id}: {e}")
            continue
        moved += 1
    return moved


def get_invoice_summary(invoice_id: int) -> Dict:
    """
    Everything a printable invoice document needs, as plain data.
    """
    try:
        invoice = Invoice.objects.get(id=invoice_id)
    except Invoice.DoesNotExist:
        raise NotFoundError(f"Invoice {invoice_id} not found")

    subtotal, vat = vat_breakdown(invoice.total_amount)
    company = settings.COMPANY_INFO

    return {
        'filename': invoice.document_filename,
        'company': {
            'name': company['name'],
            'tagline': company['tagline'],
            'cvr': company['cvr'],
            'phone': company['phone'],
            'email': company['email'],
        },
        'invoice': {
            'id': invoice.id,
            'invoice_number': invoice.invoice_number,
            'status': invoice.status,
            'issued_date': invoice.issued_date.isoformat(),
            'due_date': invoice.due_date.isoformat(),
            'paid_date': invoice.paid_date.isoformat() if invoice.paid_date else None,
        },
        'customer': {
            'id': invoice.customer_id,
            'name': invoice.customer_name,
            'address': invoice.customer_address,
        },
        'line_items': [
            {
                'description': 'Rengøringsservice',
                'task_date': invoice.task_date.isoformat(),
                'hours': str(invoice.hours),
                'hourly_rate': str(invoice.hourly_rate),
                'amount': str(invoice.total_amount),
            }
        ],
        'totals': {
            'subtotal': str(subtotal),
            'vat': str(vat),
            'vat_rate': str(settings.INVOICE_VAT_RATE),
            'total': str(invoice.total_amount),
        },
        'payment_terms': {
            'bank_account': company['bank_account'],
            'due_date': invoice.due_date.isoformat(),
            'late_fee': company['late_fee_terms'],
        },
    }


def invoice_stats() -> Dict:
    """Invoice counts and amounts per status."""
    stats = Invoice.objects.aggregate(
        total_invoices=Count('id'),
        draft_invoices=Count('id', filter=Q(status=Invoice.Status.DRAFT)),
        sent_invoices=Count('id', filter=Q(status=Invoice.Status.SENT)),
        paid_invoices=Count('id', filter=Q(status=Invoice.Status.PAID)),
        overdue_invoices=Count('id', filter=Q(status=Invoice.Status.OVERDUE)),
        paid_amount=Sum('total_amount', filter=Q(status=Invoice.Status.PAID)),
        outstanding_amount=Sum(
            'total_amount',
            filter=Q(status__in=[Invoice.Status.SENT, Invoice.Status.OVERDUE])
        ),
    )
    stats['paid_amount'] = str(Decimal(stats['paid_amount'] or 0).quantize(CENT))
    stats['outstanding_amount'] = str(Decimal(stats['outstanding_amount'] or 0).quantize(CENT))
    stats['tasks_ready_to_invoice'] = Task.objects.filter(
        status=Task.Status.COMPLETED,
        invoice_generated=False
    ).count()
    return stats
