"""
Tests for the inventory ledger.

Test Cases:
1. Restock and usage update stock and append transactions
2. Usage beyond available stock is rejected without any mutation
3. Transaction quantities always sum to current - initial stock
4. Low stock alerts are deduplicated
5. Ledger entries cannot be changed or deleted
"""
from datetime import date, time
from decimal import Decimal
from unittest.mock import patch

from django.db import IntegrityError, transaction
from django.test import TestCase
from django.urls import reverse
from rest_framework.test import APITestCase

from core.exceptions import NotFoundError, ValidationError, InsufficientStockError
from scheduling.models import Customer, Employee, Task
from inventory.models import (
    InventoryItem,
    InventoryTransaction,
    InventoryAlert,
    ImmutableRecordError,
)
from inventory.services import (
    add_inventory_item,
    restock_item,
    record_usage,
    record_waste,
    adjust_stock,
    check_stock_alert,
    resolve_alert,
    recent_transactions,
    unresolved_alerts,
    ledger_balance,
    inventory_overview,
)
from inventory.tasks import generate_low_stock_report


class InventoryLedgerTestCase(TestCase):
    """Test cases for restock and usage."""

    def setUp(self):
        self.item = add_inventory_item({
            'item_name': 'Glasrens 750ml',
            'category': InventoryItem.Category.CLEANING_SUPPLIES,
            'quantity': 5,
            'minimum_quantity': 10,
            'unit': 'flaske',
            'price_per_unit': '19.95',
        })
        self.initial_quantity = self.item.quantity

    def test_new_item_has_no_transactions(self):
        self.assertEqual(self.item.quantity, Decimal('5'))
        self.assertEqual(self.item.transactions.count(), 0)

    def test_usage_below_minimum(self):
        """
        Given: 5 in stock, minimum 10
        When: Recording usage of 3
        Then: 2 left, one usage transaction of -3, one low_stock alert at 2
        """
        item = record_usage(self.item.id, 3)

        self.assertEqual(item.quantity, Decimal('2'))

        transactions = InventoryTransaction.objects.filter(item=self.item)
        self.assertEqual(transactions.count(), 1)
        self.assertEqual(transactions[0].type, InventoryTransaction.Type.USAGE)
        self.assertEqual(transactions[0].quantity, Decimal('-3'))

        alerts = InventoryAlert.objects.filter(item=self.item, is_resolved=False)
        self.assertEqual(alerts.count(), 1)
        self.assertEqual(alerts[0].alert_type, InventoryAlert.AlertType.LOW_STOCK)
        self.assertEqual(alerts[0].current_value, Decimal('2'))
        self.assertEqual(alerts[0].threshold_value, Decimal('10'))

    def test_insufficient_stock_changes_nothing(self):
        with self.assertRaises(InsufficientStockError) as context:
            record_usage(self.item.id, 6)

        self.assertEqual(context.exception.available, Decimal('5'))
        self.assertIn('available: 5', str(context.exception))

        self.item.refresh_from_db()
        self.assertEqual(self.item.quantity, Decimal('5'))
        self.assertEqual(InventoryTransaction.objects.filter(item=self.item).count(), 0)
        self.assertEqual(InventoryAlert.objects.filter(item=self.item).count(), 0)

    def test_usage_of_exact_stock(self):
        item = record_usage(self.item.id, 5)

        self.assertEqual(item.quantity, Decimal('0'))
        alert = InventoryAlert.objects.get(item=self.item)
        self.assertEqual(alert.alert_type, InventoryAlert.AlertType.OUT_OF_STOCK)

    def test_usage_requires_positive_quantity(self):
        with self.assertRaises(ValidationError):
            record_usage(self.item.id, 0)
        with self.assertRaises(ValidationError):
            record_usage(self.item.id, -2)

        self.item.refresh_from_db()
        self.assertEqual(self.item.quantity, Decimal('5'))

    def test_usage_unknown_item(self):
        with self.assertRaises(NotFoundError):
            record_usage(99999, 1)

    def test_usage_links_task_and_employee(self):
        customer = Customer.objects.create(name='Hansen')
        employee = Employee.objects.create(name='Maria')
        task = Task.objects.create(
            customer=customer,
            scheduled_date=date(2024, 3, 1),
            start_time=time(9, 0),
            estimated_duration_hours=Decimal('2.00'),
        )

        record_usage(self.item.id, 1, task_id=task.id, employee_id=employee.id, notes='Vinduer')

        entry = InventoryTransaction.objects.get(item=self.item)
        self.assertEqual(entry.task_id, task.id)
        self.assertEqual(entry.employee_id, employee.id)
        self.assertEqual(entry.notes, 'Vinduer')

    def test_usage_unknown_task_changes_nothing(self):
        with self.assertRaises(NotFoundError):
            record_usage(self.item.id, 1, task_id=99999)

        self.item.refresh_from_db()
        self.assertEqual(self.item.quantity, Decimal('5'))

    def test_restock(self):
        item = restock_item(self.item.id, 20, cost_per_unit='15.00', notes='Levering')

        self.assertEqual(item.quantity, Decimal('25'))
        self.assertIsNotNone(item.last_restocked)

        entry = InventoryTransaction.objects.get(item=self.item)
        self.assertEqual(entry.type, InventoryTransaction.Type.RESTOCK)
        self.assertEqual(entry.quantity, Decimal('20'))
        self.assertEqual(entry.cost_total, Decimal('300.00'))

    def test_restock_without_cost(self):
        restock_item(self.item.id, 2)

        entry = InventoryTransaction.objects.get(item=self.item)
        self.assertIsNone(entry.cost_total)

    def test_restock_rejects_non_positive_quantity(self):
        with self.assertRaises(ValidationError):
            restock_item(self.item.id, 0)

        self.assertEqual(InventoryTransaction.objects.count(), 0)

    def test_restock_unknown_item(self):
        with self.assertRaises(NotFoundError):
            restock_item(99999, 5)

        self.assertEqual(InventoryTransaction.objects.count(), 0)

    def test_waste(self):
        item = record_waste(self.item.id, 1, notes='Tabt flaske')

        self.assertEqual(item.quantity, Decimal('4'))
        entry = InventoryTransaction.objects.get(item=self.item)
        self.assertEqual(entry.type, InventoryTransaction.Type.WASTE)
        self.assertEqual(entry.quantity, Decimal('-1'))

    def test_adjust_stock(self):
        item = adjust_stock(self.item.id, 8, notes='Optælling')

        self.assertEqual(item.quantity, Decimal('8'))
        entry = InventoryTransaction.objects.get(item=self.item)
        self.assertEqual(entry.type, InventoryTransaction.Type.ADJUSTMENT)
        self.assertEqual(entry.quantity, Decimal('3'))

    def test_adjust_to_same_quantity_records_nothing(self):
        adjust_stock(self.item.id, 5)

        self.assertEqual(InventoryTransaction.objects.count(), 0)

    def test_adjust_rejects_negative(self):
        with self.assertRaises(ValidationError):
            adjust_stock(self.item.id, -1)

    def test_ledger_sum_matches_stock_change(self):
        restock_item(self.item.id, 10)
        record_usage(self.item.id, 4)
        record_waste(self.item.id, 1)
        restock_item(self.item.id, 3)
        adjust_stock(self.item.id, 12)
        record_usage(self.item.id, 12)

        self.item.refresh_from_db()
        self.assertEqual(self.item.quantity, Decimal('0'))
        self.assertEqual(
            ledger_balance(self.item.id),
            self.item.quantity - self.initial_quantity
        )

    def test_stock_never_negative(self):
        operations = [
            ('use', 2), ('use', 4), ('restock', 1), ('use', 4),
            ('use', 1), ('restock', 6), ('use', 7), ('use', 3),
        ]
        for operation, quantity in operations:
            try:
                if operation == 'use':
                    record_usage(self.item.id, quantity)
                else:
                    restock_item(self.item.id, quantity)
            except InsufficientStockError:
                pass
            self.item.refresh_from_db()
            self.assertGreaterEqual(self.item.quantity, 0)

        self.assertEqual(
            ledger_balance(self.item.id),
            self.item.quantity - self.initial_quantity
        )

    def test_sub_cent_quantities_rejected(self):
        with self.assertRaises(ValidationError):
            record_usage(self.item.id, Decimal('0.004'))
        with self.assertRaises(ValidationError):
            restock_item(self.item.id, '1.005')
        with self.assertRaises(ValidationError):
            adjust_stock(self.item.id, '4.999')

        self.item.refresh_from_db()
        self.assertEqual(self.item.quantity, Decimal('5'))
        self.assertEqual(ledger_balance(self.item.id), Decimal('0'))

    def test_trailing_zeros_accepted(self):
        item = record_usage(self.item.id, '0.500')

        self.assertEqual(item.quantity, Decimal('4.50'))
        self.assertEqual(
            ledger_balance(self.item.id),
            item.quantity - self.initial_quantity
        )

    def test_non_finite_quantities_rejected(self):
        for value in ['NaN', 'Infinity', '-Infinity', 'sNaN', 'abc', None]:
            with self.assertRaises(ValidationError):
                record_usage(self.item.id, value)
            with self.assertRaises(ValidationError):
                restock_item(self.item.id, value)
        with self.assertRaises(ValidationError):
            adjust_stock(self.item.id, 'NaN')

        self.item.refresh_from_db()
        self.assertEqual(self.item.quantity, Decimal('5'))
        self.assertEqual(InventoryTransaction.objects.count(), 0)

    def test_stock_taken_between_check_and_update(self):
        """
        Given: 5 in stock when the usage call starts
        When: Another caller takes 3 before the decrement runs
        Then: Usage of 4 is rejected against the 2 left, nothing is written
        """
        def other_caller_takes_stock(task_id, employee_id):
            InventoryItem.objects.filter(id=self.item.id).update(quantity=Decimal('2'))
            return None, None

        with patch('inventory.services._resolve_references', side_effect=other_caller_takes_stock):
            with self.assertRaises(InsufficientStockError) as context:
                record_usage(self.item.id, 4)

        self.assertEqual(context.exception.available, Decimal('2'))
        self.item.refresh_from_db()
        self.assertEqual(self.item.quantity, Decimal('2'))
        self.assertEqual(InventoryTransaction.objects.filter(item=self.item).count(), 0)

    def test_database_rejects_negative_quantity(self):
        with self.assertRaises(IntegrityError):
            with transaction.atomic():
                InventoryItem.objects.filter(id=self.item.id).update(quantity=Decimal('-1'))


class InventoryAlertTestCase(TestCase):
    """Test cases for alert creation, deduplication and resolution."""

    def setUp(self):
        self.item = add_inventory_item({
            'item_name': 'Mikrofiberklude',
            'category': InventoryItem.Category.CONSUMABLES,
            'quantity': 12,
            'minimum_quantity': 10,
            'unit': 'pakke',
        })

    def test_no_alert_above_minimum(self):
        record_usage(self.item.id, 1)

        self.assertEqual(InventoryAlert.objects.count(), 0)

    def test_alert_at_minimum(self):
        record_usage(self.item.id, 2)

        self.assertEqual(InventoryAlert.objects.filter(item=self.item).count(), 1)

    def test_consecutive_usage_creates_one_alert(self):
        record_usage(self.item.id, 3)
        record_usage(self.item.id, 2)

        alerts = InventoryAlert.objects.filter(item=self.item, is_resolved=False)
        self.assertEqual(alerts.count(), 1)
        self.assertEqual(alerts[0].current_value, Decimal('9'))

    def test_open_low_stock_alert_blocks_out_of_stock_alert(self):
        record_usage(self.item.id, 3)
        record_usage(self.item.id, 9)

        alerts = InventoryAlert.objects.filter(item=self.item, is_resolved=False)
        self.assertEqual(alerts.count(), 1)
        self.assertEqual(alerts[0].alert_type, InventoryAlert.AlertType.LOW_STOCK)

    def test_resolve_alert(self):
        record_usage(self.item.id, 3)
        alert = InventoryAlert.objects.get(item=self.item)

        resolved = resolve_alert(alert.id)

        self.assertTrue(resolved.is_resolved)
        self.assertIsNotNone(resolved.resolved_at)
        self.assertEqual(unresolved_alerts().count(), 0)

    def test_resolve_does_not_recheck_stock(self):
        record_usage(self.item.id, 3)
        alert = InventoryAlert.objects.get(item=self.item)

        resolve_alert(alert.id)

        self.item.refresh_from_db()
        self.assertTrue(self.item.is_low_stock)
        self.assertEqual(InventoryAlert.objects.filter(item=self.item).count(), 1)

    def test_new_alert_after_resolution(self):
        record_usage(self.item.id, 3)
        resolve_alert(InventoryAlert.objects.get(item=self.item).id)

        record_usage(self.item.id, 1)

        self.assertEqual(InventoryAlert.objects.filter(item=self.item).count(), 2)
        self.assertEqual(unresolved_alerts().count(), 1)

    def test_resolve_unknown_alert(self):
        with self.assertRaises(NotFoundError):
            resolve_alert(99999)

    def test_alert_failure_does_not_block_usage(self):
        with patch.object(InventoryAlert.objects, 'create', side_effect=RuntimeError('boom')):
            item = record_usage(self.item.id, 5)

        self.assertEqual(item.quantity, Decimal('7'))
        self.assertEqual(InventoryTransaction.objects.filter(item=self.item).count(), 1)
        self.assertEqual(InventoryAlert.objects.count(), 0)

    def test_check_stock_alert_returns_created_alert(self):
        InventoryItem.objects.filter(id=self.item.id).update(quantity=Decimal('0'))

        alert = check_stock_alert(self.item.id)

        self.assertEqual(alert.alert_type, InventoryAlert.AlertType.OUT_OF_STOCK)
        self.assertIsNone(check_stock_alert(self.item.id))

    def test_low_stock_report(self):
        record_usage(self.item.id, 4)

        report = generate_low_stock_report()

        self.assertEqual(report['low_stock_items'], 1)
        self.assertEqual(report['open_alerts'], 1)
        self.assertEqual(report['items'], [self.item.id])


class InventoryItemTestCase(TestCase):
    """Test cases for item creation, queries and ledger immutability."""

    def test_add_item_validation(self):
        with self.assertRaises(ValidationError):
            add_inventory_item({'item_name': '  ', 'quantity': 1})
        with self.assertRaises(ValidationError):
            add_inventory_item({'item_name': 'Spand', 'quantity': -1})
        with self.assertRaises(ValidationError):
            add_inventory_item({'item_name': 'Spand', 'category': 'furniture'})

        self.assertEqual(InventoryItem.objects.count(), 0)

    def test_add_item_defaults(self):
        item = add_inventory_item({'item_name': 'Spand'})

        self.assertEqual(item.category, InventoryItem.Category.OTHER)
        self.assertEqual(item.quantity, Decimal('0'))
        self.assertEqual(item.unit, 'stk')

    def test_transactions_are_immutable(self):
        item = add_inventory_item({'item_name': 'Spand', 'quantity': 3})
        restock_item(item.id, 2)
        entry = InventoryTransaction.objects.get(item=item)

        entry.quantity = Decimal('200')
        with self.assertRaises(ImmutableRecordError):
            entry.save()
        with self.assertRaises(ImmutableRecordError):
            entry.delete()

        entry.refresh_from_db()
        self.assertEqual(entry.quantity, Decimal('2'))

    def test_recent_transactions_newest_first(self):
        item = add_inventory_item({'item_name': 'Spand', 'quantity': 3})
        restock_item(item.id, 1)
        record_usage(item.id, 2)

        entries = list(recent_transactions())

        self.assertEqual(len(entries), 2)
        self.assertEqual(entries[0].type, InventoryTransaction.Type.USAGE)
        self.assertEqual(entries[0].item.item_name, 'Spand')

    def test_recent_transactions_limit(self):
        item = add_inventory_item({'item_name': 'Spand', 'quantity': 3})
        for _ in range(3):
            restock_item(item.id, 1)

        self.assertEqual(len(list(recent_transactions(limit=2))), 2)

    def test_overview(self):
        add_inventory_item({'item_name': 'Spand', 'quantity': 4, 'price_per_unit': '25.00'})
        add_inventory_item({'item_name': 'Moppe', 'quantity': 0, 'minimum_quantity': 1})

        overview = inventory_overview()

        self.assertEqual(overview['total_items'], 2)
        self.assertEqual(overview['low_stock_items'], 1)
        self.assertEqual(overview['out_of_stock_items'], 1)
        self.assertEqual(overview['stock_value'], '100.00')
        self.assertEqual(overview['open_alerts'], 0)


class InventoryAPITestCase(APITestCase):
    """Test cases for the inventory endpoints."""

    def setUp(self):
        self.item = add_inventory_item({
            'item_name': 'Kalkfjerner 1L',
            'category': InventoryItem.Category.CLEANING_SUPPLIES,
            'quantity': 5,
            'minimum_quantity': 10,
        })

    def test_create_item(self):
        response = self.client.post(
            reverse('inventory:item-list'),
            {
                'item_name': 'Gulvsæbe 5L',
                'category': 'cleaning_supplies',
                'quantity': '8',
                'minimum_quantity': '2',
                'unit': 'dunk',
                'price_per_unit': '129.00',
            },
            format='json'
        )

        self.assertEqual(response.status_code, 201)
        self.assertEqual(response.data['quantity'], '8.00')
        self.assertEqual(InventoryTransaction.objects.count(), 0)

    def test_usage_endpoint(self):
        response = self.client.post(
            reverse('inventory:item-usage', args=[self.item.id]),
            {'quantity': '3'},
            format='json'
        )

        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.data['quantity'], '2.00')
        self.assertTrue(response.data['is_low_stock'])

    def test_usage_endpoint_insufficient_stock(self):
        response = self.client.post(
            reverse('inventory:item-usage', args=[self.item.id]),
            {'quantity': '9'},
            format='json'
        )

        self.assertEqual(response.status_code, 409)
        self.assertEqual(response.data['error'], 'Insufficient Stock')
        self.assertEqual(Decimal(response.data['available']), Decimal('5'))

    def test_restock_endpoint(self):
        response = self.client.post(
            reverse('inventory:item-restock', args=[self.item.id]),
            {'quantity': '10', 'cost_per_unit': '30.00'},
            format='json'
        )

        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.data['quantity'], '15.00')

    def test_update_ignores_quantity(self):
        response = self.client.patch(
            reverse('inventory:item-detail', args=[self.item.id]),
            {'quantity': '500', 'supplier': 'Kiilto'},
            format='json'
        )

        self.assertEqual(response.status_code, 200)
        self.item.refresh_from_db()
        self.assertEqual(self.item.quantity, Decimal('5'))
        self.assertEqual(self.item.supplier, 'Kiilto')

    def test_transactions_and_alerts_endpoints(self):
        record_usage(self.item.id, 1)

        transactions = self.client.get(reverse('inventory:transaction-list'))
        alerts = self.client.get(reverse('inventory:alert-list'))

        self.assertEqual(transactions.status_code, 200)
        self.assertEqual(transactions.data[0]['item_name'], 'Kalkfjerner 1L')
        self.assertEqual(alerts.status_code, 200)
        self.assertEqual(len(alerts.data), 1)

    def test_resolve_alert_endpoint(self):
        record_usage(self.item.id, 1)
        alert = InventoryAlert.objects.get(item=self.item)

        response = self.client.post(reverse('inventory:alert-resolve', args=[alert.id]))

        self.assertEqual(response.status_code, 200)
        self.assertTrue(response.data['is_resolved'])
        self.assertEqual(len(self.client.get(reverse('inventory:alert-list')).data), 0)

    def test_resolve_alert_unexpected_error(self):
        record_usage(self.item.id, 1)
        alert = InventoryAlert.objects.get(item=self.item)

        with patch('inventory.services.resolve_alert', side_effect=RuntimeError('boom')):
            with self.assertLogs('core.api', level='ERROR'):
                response = self.client.post(reverse('inventory:alert-resolve', args=[alert.id]))

        self.assertEqual(response.status_code, 500)
        alert.refresh_from_db()
        self.assertFalse(alert.is_resolved)

    def test_usage_endpoint_rejects_sub_cent_quantity(self):
        response = self.client.post(
            reverse('inventory:item-usage', args=[self.item.id]),
            {'quantity': '0.004'},
            format='json'
        )

        self.assertEqual(response.status_code, 400)
        self.item.refresh_from_db()
        self.assertEqual(self.item.quantity, Decimal('5'))
