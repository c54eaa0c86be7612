"""
Celery tasks for invoice processing.

Tasks:
    - send_invoice_notification: Async notification after an invoice is created
    - mark_overdue_invoices: Periodic sweep of sent invoices past due
    - generate_daily_invoice_report: Daily invoicing statistics
"""
import logging
from datetime import timedelta
from decimal import Decimal

from celery import shared_task

logger = logging.getLogger(__name__)


@shared_task(
    bind=True,
    max_retries=3,
    default_retry_delay=60,
    autoretry_for=(Exception,),
    retry_backoff=True
)
def send_invoice_notification(self, invoice_id: int):
    """
    Async task triggered after an invoice is created.

    Args:
        invoice_id: ID of the new invoice

    Returns:
        Dict with notification details
    """
    from invoicing.models import Invoice, CENT

    try:
        invoice = Invoice.objects.get(id=invoice_id)
    except Invoice.DoesNotExist:
        logger.error(f"Invoice #{invoice_id} not found for notification")
        return {'status': 'error', 'message': f'Invoice {invoice_id} not found'}

    logger.info(f"[CELERY] Processing notification for invoice {invoice.invoice_number}")

    message = f"""
    ===============================================
    FAKTURA - {invoice.invoice_number}
    ===============================================
    Customer: {invoice.customer_name}
    Address: {invoice.customer_address}
    Task date: {invoice.task_date.isoformat()}
    Hours: {invoice.hours} @ {invoice.hourly_rate}
    Subtotal: {invoice.subtotal_amount}
    VAT: {invoice.vat_amount}
    Total: {invoice.total_amount}
    Due: {invoice.due_date.isoformat()}
    ===============================================
    """

    logger.info(message)

    return {
        'status': 'success',
        'invoice_id': invoice.id,
        'message': f'Notification sent for invoice {invoice.invoice_number}'
    }


@shared_task
def mark_overdue_invoices():
    """
    Periodic task moving sent invoices past their due date to overdue.
    """
    from invoicing.services import mark_overdue_invoices as mark_overdue

    count = mark_overdue()
    if count > 0:
        logger.warning(f"[CELERY] Marked {count} invoices as overdue")

    return {'processed': count}


@shared_task
def generate_daily_invoice_report():
    """
    Generate yesterday's invoicing statistics.

    Can be scheduled via Celery Beat for daily execution.
    """
    from invoicing.models import Invoice, CENT
    from django.utils import timezone
    from django.db.models import Sum, Count, Q

    yesterday = timezone.localdate() - timedelta(days=1)

    stats = Invoice.objects.filter(issued_date=yesterday).aggregate(
        total_invoices=Count('id'),
        total_amount=Sum('total_amount'),
    )
    stats['paid_yesterday'] = Invoice.objects.filter(paid_date=yesterday).aggregate(
        amount=Sum('total_amount')
    )['amount']
    stats['overdue_invoices'] = Invoice.objects.filter(
        Q(status=Invoice.Status.OVERDUE)
    ).count()

    report = f"""
    ===============================================
    DAILY INVOICE REPORT - {yesterday}
    ===============================================
    Invoices issued: {stats['total_invoices']}
    Amount invoiced: {stats['total_amount'] or 0}
    Payments received: {stats['paid_yesterday'] or 0}
    Overdue invoices: {stats['overdue_invoices']}
    ===============================================
    """

    logger.info(report)

    stats['total_amount'] = str(Decimal(stats['total_amount'] or 0).quantize(CENT))
    stats['paid_yesterday'] = str(Decimal(stats['paid_yesterday'] or 0).quantize(CENT))
    return stats
