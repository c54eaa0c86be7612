"""
Tests for invoice creation and reconciliation with tasks.

Test Cases:
1. Invoice derived from a completed task (hours, rate, total, dates)
2. Snapshot is frozen against later customer edits
3. At most one invoice per task
4. Status transitions and paid date
5. Deleting drafts releases the task
"""
import re
from datetime import date, time
from decimal import Decimal
from unittest.mock import patch

from django.db import IntegrityError, transaction
from django.test import TestCase
from django.urls import reverse
from rest_framework.test import APITestCase

from core.exceptions import (
    NotFoundError,
    ValidationError,
    AlreadyInvoicedError,
    InvalidTransitionError,
)
from scheduling.models import Customer, Task
from invoicing.models import Invoice
from invoicing.services import (
    create_invoice_from_task,
    update_invoice_status,
    delete_invoice,
    mark_overdue_invoices,
    get_invoice_summary,
    invoice_stats,
    vat_breakdown,
)
from invoicing.tasks import send_invoice_notification


def make_task(customer, status=Task.Status.COMPLETED, estimated='3.00', actual=None,
              scheduled_date=date(2024, 2, 28)):
    return Task.objects.create(
        customer=customer,
        customer_name=customer.name,
        customer_address=customer.address,
        scheduled_date=scheduled_date,
        start_time=time(9, 0),
        estimated_duration_hours=Decimal(estimated),
        actual_duration_hours=Decimal(actual) if actual is not None else None,
        status=status,
    )


class InvoiceCreationTestCase(TestCase):
    """Test cases for create_invoice_from_task."""

    def setUp(self):
        self.customer = Customer.objects.create(
            name='Hansen ApS',
            address='Strandvejen 10, 2900 Hellerup',
            hourly_rate=Decimal('349.00')
        )
        self.task = make_task(self.customer)

    def test_invoice_from_completed_task(self):
        """
        Given: Completed task, estimated 3h, no actual duration, rate 349
        When: Creating the invoice
        Then: 3h x 349 = 1047 in draft, task flagged as invoiced
        """
        invoice = create_invoice_from_task(self.task.id)

        self.assertEqual(invoice.hours, Decimal('3.00'))
        self.assertEqual(invoice.hourly_rate, Decimal('349.00'))
        self.assertEqual(invoice.total_amount, Decimal('1047.00'))
        self.assertEqual(invoice.status, Invoice.Status.DRAFT)
        self.assertEqual(invoice.customer_name, 'Hansen ApS')
        self.assertEqual(invoice.task_date, date(2024, 2, 28))

        self.task.refresh_from_db()
        self.assertTrue(self.task.invoice_generated)
        self.assertIsNotNone(self.task.invoiced_at)

    def test_actual_duration_takes_precedence(self):
        task = make_task(self.customer, estimated='3.00', actual='2.50')

        invoice = create_invoice_from_task(task.id)

        self.assertEqual(invoice.hours, Decimal('2.50'))
        self.assertEqual(invoice.total_amount, Decimal('872.50'))

    def test_invoice_number_and_due_date(self):
        invoice = create_invoice_from_task(self.task.id, today=date(2024, 3, 1))

        self.assertRegex(invoice.invoice_number, r'^F-20240301-\d{4}$')
        self.assertEqual(invoice.issued_date, date(2024, 3, 1))
        self.assertEqual(invoice.due_date, date(2024, 3, 15))

    def test_invoice_number_redrawn_on_collision(self):
        other_task = make_task(self.customer)

        with patch('invoicing.services.random.randint', side_effect=[42, 42, 7]):
            first = create_invoice_from_task(self.task.id, today=date(2024, 3, 1))
            second = create_invoice_from_task(other_task.id, today=date(2024, 3, 1))

        self.assertEqual(first.invoice_number, 'F-20240301-0042')
        self.assertEqual(second.invoice_number, 'F-20240301-0007')

    def test_amount_frozen_after_customer_rate_change(self):
        invoice = create_invoice_from_task(self.task.id)

        self.customer.hourly_rate = Decimal('499.00')
        self.customer.name = 'Hansen & Co ApS'
        self.customer.save()

        invoice.refresh_from_db()
        self.assertEqual(invoice.hourly_rate, Decimal('349.00'))
        self.assertEqual(invoice.total_amount, Decimal('1047.00'))
        self.assertEqual(invoice.customer_name, 'Hansen ApS')

    def test_second_invoice_for_same_task_rejected(self):
        create_invoice_from_task(self.task.id)

        with self.assertRaises(AlreadyInvoicedError):
            create_invoice_from_task(self.task.id)

        self.assertEqual(Invoice.objects.filter(task=self.task).count(), 1)

    def test_existing_invoice_detected_even_if_flag_cleared(self):
        create_invoice_from_task(self.task.id)
        Task.objects.filter(id=self.task.id).update(invoice_generated=False)

        with self.assertRaises(AlreadyInvoicedError):
            create_invoice_from_task(self.task.id)

        self.assertEqual(Invoice.objects.count(), 1)

    def test_database_rejects_duplicate_task_reference(self):
        invoice = create_invoice_from_task(self.task.id)

        with self.assertRaises(IntegrityError):
            with transaction.atomic():
                Invoice.objects.create(
                    invoice_number='F-20240301-9999',
                    task=self.task,
                    customer=self.customer,
                    customer_name=invoice.customer_name,
                    task_date=invoice.task_date,
                    hours=invoice.hours,
                    hourly_rate=invoice.hourly_rate,
                    total_amount=invoice.total_amount,
                    issued_date=invoice.issued_date,
                    due_date=invoice.due_date,
                )

    def test_task_not_completed_rejected(self):
        task = make_task(self.customer, status=Task.Status.IN_PROGRESS)

        with self.assertRaises(ValidationError):
            create_invoice_from_task(task.id)

        task.refresh_from_db()
        self.assertFalse(task.invoice_generated)
        self.assertEqual(Invoice.objects.count(), 0)

    def test_missing_task(self):
        with self.assertRaises(NotFoundError) as context:
            create_invoice_from_task(99999)

        self.assertIn('not found', str(context.exception))


class InvoiceStatusTestCase(TestCase):
    """Test cases for status transitions, deletion and overdue marking."""

    def setUp(self):
        self.customer = Customer.objects.create(name='Jensen', address='Vesterbrogade 1')
        self.task = make_task(self.customer, estimated='2.00')
        self.invoice = create_invoice_from_task(self.task.id, today=date(2024, 3, 1))

    def test_paid_sets_paid_date(self):
        update_invoice_status(self.invoice.id, Invoice.Status.PAID, today=date(2024, 3, 5))

        invoice = Invoice.objects.get(id=self.invoice.id)
        self.assertEqual(invoice.status, Invoice.Status.PAID)
        self.assertEqual(invoice.paid_date, date(2024, 3, 5))

    def test_sent_then_overdue_then_paid(self):
        update_invoice_status(self.invoice.id, Invoice.Status.SENT)
        update_invoice_status(self.invoice.id, Invoice.Status.OVERDUE)
        invoice = update_invoice_status(self.invoice.id, Invoice.Status.PAID)

        self.assertEqual(invoice.status, Invoice.Status.PAID)
        self.assertIsNotNone(invoice.paid_date)

    def test_paid_is_terminal(self):
        update_invoice_status(self.invoice.id, Invoice.Status.PAID)

        with self.assertRaises(InvalidTransitionError):
            update_invoice_status(self.invoice.id, Invoice.Status.SENT)

    def test_draft_cannot_become_overdue(self):
        with self.assertRaises(InvalidTransitionError):
            update_invoice_status(self.invoice.id, Invoice.Status.OVERDUE)

        self.invoice.refresh_from_db()
        self.assertEqual(self.invoice.status, Invoice.Status.DRAFT)

    def test_unknown_status(self):
        with self.assertRaises(ValidationError):
            update_invoice_status(self.invoice.id, 'cancelled')

    def test_status_change_keeps_amounts(self):
        invoice = update_invoice_status(self.invoice.id, Invoice.Status.SENT)

        self.assertEqual(invoice.total_amount, self.invoice.total_amount)
        self.assertEqual(invoice.hourly_rate, self.invoice.hourly_rate)

    def test_delete_draft_releases_task(self):
        delete_invoice(self.invoice.id)

        self.assertFalse(Invoice.objects.filter(id=self.invoice.id).exists())
        self.task.refresh_from_db()
        self.assertFalse(self.task.invoice_generated)
        self.assertIsNone(self.task.invoiced_at)

        # Task can be invoiced again
        new_invoice = create_invoice_from_task(self.task.id)
        self.assertEqual(new_invoice.task_id, self.task.id)

    def test_delete_sent_invoice_rejected(self):
        update_invoice_status(self.invoice.id, Invoice.Status.SENT)

        with self.assertRaises(InvalidTransitionError):
            delete_invoice(self.invoice.id)

        self.assertTrue(Invoice.objects.filter(id=self.invoice.id).exists())
        self.task.refresh_from_db()
        self.assertTrue(self.task.invoice_generated)

    def test_mark_overdue_invoices(self):
        update_invoice_status(self.invoice.id, Invoice.Status.SENT)

        # Due 2024-03-15: not overdue on the due date itself
        self.assertEqual(mark_overdue_invoices(today=date(2024, 3, 15)), 0)
        self.assertEqual(mark_overdue_invoices(today=date(2024, 3, 16)), 1)

        self.invoice.refresh_from_db()
        self.assertEqual(self.invoice.status, Invoice.Status.OVERDUE)

    def test_draft_invoices_not_marked_overdue(self):
        self.assertEqual(mark_overdue_invoices(today=date(2024, 6, 1)), 0)

    def test_overdue_sweep_skips_invoice_paid_meanwhile(self):
        """
        Given: Two sent invoices past due
        When: One of them is paid while the sweep is running
        Then: The paid one stays paid, the other becomes overdue
        """
        other_invoice = create_invoice_from_task(
            make_task(self.customer).id, today=date(2024, 3, 1)
        )
        update_invoice_status(self.invoice.id, Invoice.Status.SENT)
        update_invoice_status(other_invoice.id, Invoice.Status.SENT)

        real_update = update_invoice_status
        paid = []

        def pay_first_then_update(invoice_id, new_status, today=None):
            if not paid:
                paid.append(invoice_id)
                real_update(invoice_id, Invoice.Status.PAID, today=today)
            return real_update(invoice_id, new_status, today=today)

        with patch('invoicing.services.update_invoice_status', side_effect=pay_first_then_update):
            moved = mark_overdue_invoices(today=date(2024, 4, 1))

        self.assertEqual(moved, 1)
        self.assertEqual(Invoice.objects.get(id=paid[0]).status, Invoice.Status.PAID)
        self.assertEqual(
            Invoice.objects.filter(status=Invoice.Status.OVERDUE).count(), 1
        )


class InvoiceDocumentTestCase(TestCase):
    """Test cases for VAT split, document data and statistics."""

    def setUp(self):
        self.customer = Customer.objects.create(name='Nielsen', address='Nørregade 5')
        self.task = make_task(self.customer)
        self.invoice = create_invoice_from_task(self.task.id, today=date(2024, 3, 1))

    def test_vat_breakdown(self):
        subtotal, vat = vat_breakdown(Decimal('1047.00'))

        self.assertEqual(vat, Decimal('209.40'))
        self.assertEqual(subtotal, Decimal('837.60'))
        self.assertEqual(subtotal + vat, Decimal('1047.00'))

    def test_model_vat_properties(self):
        self.assertEqual(self.invoice.vat_amount, Decimal('209.40'))
        self.assertEqual(self.invoice.subtotal_amount, Decimal('837.60'))

    def test_summary(self):
        summary = get_invoice_summary(self.invoice.id)

        self.assertEqual(summary['filename'], f"Faktura_{self.invoice.invoice_number}.pdf")
        self.assertEqual(summary['customer']['name'], 'Nielsen')
        self.assertEqual(len(summary['line_items']), 1)
        self.assertEqual(summary['line_items'][0]['hours'], '3.00')
        self.assertEqual(summary['totals']['total'], '1047.00')
        self.assertEqual(summary['totals']['vat'], '209.40')
        self.assertEqual(summary['invoice']['due_date'], '2024-03-15')

    def test_summary_missing_invoice(self):
        with self.assertRaises(NotFoundError):
            get_invoice_summary(99999)

    def test_stats(self):
        make_task(self.customer)
        update_invoice_status(self.invoice.id, Invoice.Status.PAID)

        stats = invoice_stats()

        self.assertEqual(stats['total_invoices'], 1)
        self.assertEqual(stats['paid_invoices'], 1)
        self.assertEqual(stats['paid_amount'], '1047.00')
        self.assertEqual(stats['outstanding_amount'], '0.00')
        self.assertEqual(stats['tasks_ready_to_invoice'], 1)

    def test_stats_amounts_have_two_decimals(self):
        update_invoice_status(self.invoice.id, Invoice.Status.SENT)

        stats = invoice_stats()

        self.assertEqual(stats['paid_amount'], '0.00')
        self.assertEqual(stats['outstanding_amount'], '1047.00')

    def test_notification_task(self):
        result = send_invoice_notification(self.invoice.id)

        self.assertEqual(result['status'], 'success')
        self.assertEqual(result['invoice_id'], self.invoice.id)

    def test_notification_task_missing_invoice(self):
        result = send_invoice_notification(99999)

        self.assertEqual(result['status'], 'error')


class InvoiceAPITestCase(APITestCase):
    """Test cases for the invoice endpoints."""

    def setUp(self):
        self.customer = Customer.objects.create(name='API Kunde', address='Testvej 1')
        self.task = make_task(self.customer)

    def test_create_from_task(self):
        response = self.client.post(
            reverse('invoicing:invoice-from-task'),
            {'task_id': self.task.id},
            format='json'
        )

        self.assertEqual(response.status_code, 201)
        self.assertEqual(response.data['total_amount'], '1047.00')
        self.assertEqual(response.data['status'], 'draft')
        self.assertTrue(re.match(r'^F-\d{8}-\d{4}$', response.data['invoice_number']))

    def test_create_twice_conflicts(self):
        url = reverse('invoicing:invoice-from-task')
        self.client.post(url, {'task_id': self.task.id}, format='json')

        response = self.client.post(url, {'task_id': self.task.id}, format='json')

        self.assertEqual(response.status_code, 400)
        self.assertEqual(Invoice.objects.count(), 1)

    def test_create_for_missing_task(self):
        response = self.client.post(
            reverse('invoicing:invoice-from-task'),
            {'task_id': 99999},
            format='json'
        )

        self.assertEqual(response.status_code, 404)

    def test_status_endpoint(self):
        invoice = create_invoice_from_task(self.task.id)

        response = self.client.post(
            reverse('invoicing:invoice-status', args=[invoice.id]),
            {'status': 'paid'},
            format='json'
        )

        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.data['status'], 'paid')
        self.assertIsNotNone(response.data['paid_date'])

    def test_invalid_transition_endpoint(self):
        invoice = create_invoice_from_task(self.task.id)

        response = self.client.post(
            reverse('invoicing:invoice-status', args=[invoice.id]),
            {'status': 'overdue'},
            format='json'
        )

        self.assertEqual(response.status_code, 409)

    def test_delete_endpoint(self):
        invoice = create_invoice_from_task(self.task.id)

        response = self.client.delete(reverse('invoicing:invoice-detail', args=[invoice.id]))

        self.assertEqual(response.status_code, 204)
        self.assertEqual(Invoice.objects.count(), 0)

    def test_document_endpoint(self):
        invoice = create_invoice_from_task(self.task.id)

        response = self.client.get(reverse('invoicing:invoice-document', args=[invoice.id]))

        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.data['filename'], f"Faktura_{invoice.invoice_number}.pdf")

    def test_document_endpoint_unexpected_error(self):
        invoice = create_invoice_from_task(self.task.id)

        with patch('invoicing.views.get_invoice_summary', side_effect=RuntimeError('boom')):
            with self.assertLogs('core.api', level='ERROR'):
                response = self.client.get(
                    reverse('invoicing:invoice-document', args=[invoice.id])
                )

        self.assertEqual(response.status_code, 500)
        self.assertEqual(response.data['error'], 'Server Error')

    def test_stats_endpoint_unexpected_error(self):
        with patch('invoicing.views.invoice_stats', side_effect=RuntimeError('boom')):
            with self.assertLogs('core.api', level='ERROR'):
                response = self.client.get(reverse('invoicing:invoice-stats'))

        self.assertEqual(response.status_code, 500)
