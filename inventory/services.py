"""
Inventory Ledger Service - stock changes with transaction history.

Every stock change follows the same pattern:
1. Validate input before touching the database
2. Change InventoryItem.quantity with a single UPDATE using F() expressions
   (decrements carry a quantity__gte guard, so two concurrent usages can
   never take stock below zero)
3. Append the InventoryTransaction in the same database transaction
4. After usage, run the alert check (best effort, never rolls back 2-3)
"""
import logging
from decimal import Decimal, InvalidOperation
from typing import Dict, Optional

from django.conf import settings
from django.db import transaction, DatabaseError
from django.db.models import F, Sum, Q, Count, DecimalField, ExpressionWrapper
from django.utils import timezone

from core.exceptions import (
    NotFoundError,
    ValidationError,
    InsufficientStockError,
    PersistenceError,
)
from scheduling.models import Employee, Task
from .models import InventoryItem, InventoryTransaction, InventoryAlert

logger = logging.getLogger(__name__)

ZERO = Decimal('0')
CENT = Decimal('0.01')


def _to_decimal(value, field: str) -> Decimal:
    """
    Parse a quantity or price. Stored columns keep two decimals, so finer
    values are rejected rather than rounded differently in stock and ledger.
    """
    try:
        number = Decimal(str(value))
    except (InvalidOperation, TypeError, ValueError):
        raise ValidationError(f"{field} must be a number")
    if not number.is_finite():
        raise ValidationError(f"{field} must be a number")
    if number.normalize().as_tuple().exponent < -2:
        raise ValidationError(f"{field} cannot have more than 2 decimals")
    return number


def _positive_quantity(value) -> Decimal:
    quantity = _to_decimal(value, 'quantity')
    if quantity <= 0:
        raise ValidationError("Quantity must be greater than zero")
    return quantity


def _resolve_references(task_id: Optional[int], employee_id: Optional[int]):
    task = employee = None
    if task_id is not None:
        task = Task.objects.filter(id=task_id).first()
        if task is None:
            raise NotFoundError(f"Task {task_id} not found")
    if employee_id is not None:
        employee = Employee.objects.filter(id=employee_id).first()
        if employee is None:
            raise NotFoundError(f"Employee {employee_id} not found")
    return task, employee


def add_inventory_item(data: Dict) -> InventoryItem:
    """
    Create a new item. The supplied quantity is the baseline stock and is
    not written to the ledger.

    Args:
        data: item_name, category, quantity, minimum_quantity, unit,
              price_per_unit, supplier, notes

    Raises:
        ValidationError: If a required field is missing or a number is negative
    """
    item_name = (data.get('item_name') or '').strip()
    if not item_name:
        raise ValidationError("Item name is required")

    category = data.get('category') or InventoryItem.Category.OTHER
    if category not in InventoryItem.Category.values:
        raise ValidationError(f"Unknown category: {category}")

    numbers = {}
    for field in ('quantity', 'minimum_quantity', 'price_per_unit'):
        value = _to_decimal(data.get(field, 0) or 0, field)
        if value < 0:
            raise ValidationError(f"{field} cannot be negative")
        numbers[field] = value

    try:
        item = InventoryItem.objects.create(
            item_name=item_name,
            category=category,
            unit=data.get('unit') or 'stk',
            supplier=data.get('supplier') or '',
            notes=data.get('notes') or '',
            **numbers
        )
    except DatabaseError as e:
        logger.error(f"Failed to add inventory item {item_name}: {e}")
        raise PersistenceError("Could not add item, please try again") from e

    logger.info(f"Added inventory item #{item.id} {item.item_name} with {item.quantity} {item.unit}")
    return item


def restock_item(item_id: int, quantity, cost_per_unit=None, notes: str = '') -> InventoryItem:
    """
    Add stock to an item and record a restock transaction.

    Raises:
        ValidationError: If quantity is not positive or cost is negative
        NotFoundError: If the item doesn't exist
        PersistenceError: If the database call fails
    """
    quantity = _positive_quantity(quantity)
    cost_total = None
    if cost_per_unit is not None:
        cost = _to_decimal(cost_per_unit, 'cost_per_unit')
        if cost < 0:
            raise ValidationError("cost_per_unit cannot be negative")
        cost_total = (cost * quantity).quantize(CENT)

    now = timezone.now()
    try:
        with transaction.atomic():
            updated = InventoryItem.objects.filter(id=item_id).update(
                quantity=F('quantity') + quantity,
                last_restocked=now,
                updated_at=now
            )
            if not updated:
                raise NotFoundError(f"Inventory item {item_id} not found")

            InventoryTransaction.objects.create(
                item_id=item_id,
                type=InventoryTransaction.Type.RESTOCK,
                quantity=quantity,
                cost_total=cost_total,
                notes=notes or '',
            )
            item = InventoryItem.objects.get(id=item_id)
    except DatabaseError as e:
        logger.error(f"Database error restocking item #{item_id}: {e}")
        raise PersistenceError("Could not restock item, please try again") from e

    logger.info(f"Restocked item #{item_id} with {quantity}, now {item.quantity}")
    return item


def _take_from_stock(
    item_id: int,
    quantity,
    transaction_type: str,
    task_id: Optional[int] = None,
    employee_id: Optional[int] = None,
    notes: str = '',
) -> InventoryItem:
    quantity = _positive_quantity(quantity)
    task, employee = _resolve_references(task_id, employee_id)

    try:
        with transaction.atomic():
            # Guarded decrement: matches no row when stock is insufficient
            updated = InventoryItem.objects.filter(
                id=item_id,
                quantity__gte=quantity
            ).update(
                quantity=F('quantity') - quantity,
                updated_at=timezone.now()
            )
            if not updated:
                item = InventoryItem.objects.filter(id=item_id).first()
                if item is None:
                    raise NotFoundError(f"Inventory item {item_id} not found")
                logger.warning(
                    f"Rejected {transaction_type} of {quantity} for item #{item_id}: "
                    f"only {item.quantity} available"
                )
                raise InsufficientStockError(item_id, quantity, item.quantity)

            InventoryTransaction.objects.create(
                item_id=item_id,
                type=transaction_type,
                quantity=-quantity,
                task=task,
                employee=employee,
                notes=notes or '',
            )
    except DatabaseError as e:
        logger.error(f"Database error taking {quantity} from item #{item_id}: {e}")
        raise PersistenceError("Could not record stock change, please try again") from e

    check_stock_alert(item_id)

    item = InventoryItem.objects.get(id=item_id)
    logger.info(f"Recorded {transaction_type} of {quantity} for item #{item_id}, now {item.quantity}")
    return item


def record_usage(item_id: int, quantity, task_id: Optional[int] = None,
                 employee_id: Optional[int] = None, notes: str = '') -> InventoryItem:
    """
    Take stock out for use on a job.

    Raises:
        ValidationError: If quantity is not positive
        NotFoundError: If the item, task or employee doesn't exist
        InsufficientStockError: If quantity exceeds current stock (nothing is changed)
        PersistenceError: If the database call fails
    """
    return _take_from_stock(
        item_id, quantity, InventoryTransaction.Type.USAGE,
        task_id=task_id, employee_id=employee_id, notes=notes
    )


def record_waste(item_id: int, quantity, employee_id: Optional[int] = None,
                 notes: str = '') -> InventoryItem:
    """Write off damaged or spilled stock. Same guarantees as record_usage."""
    return _take_from_stock(
        item_id, quantity, InventoryTransaction.Type.WASTE,
        employee_id=employee_id, notes=notes
    )


def adjust_stock(item_id: int, new_quantity, notes: str = '',
                 employee_id: Optional[int] = None) -> InventoryItem:
    """
    Correct stock after a physical count. The difference is recorded as an
    adjustment transaction; an unchanged count records nothing.
    """
    new_quantity = _to_decimal(new_quantity, 'new_quantity')
    if new_quantity < 0:
        raise ValidationError("Stock cannot be negative")
    _, employee = _resolve_references(None, employee_id)

    try:
        with transaction.atomic():
            try:
                item = InventoryItem.objects.select_for_update().get(id=item_id)
            except InventoryItem.DoesNotExist:
                raise NotFoundError(f"Inventory item {item_id} not found")

            delta = new_quantity - item.quantity
            if delta == 0:
                return item

            item.quantity = new_quantity
            item.save(update_fields=['quantity', 'updated_at'])
            InventoryTransaction.objects.create(
                item=item,
                type=InventoryTransaction.Type.ADJUSTMENT,
                quantity=delta,
                employee=employee,
                notes=notes or '',
            )
    except DatabaseError as e:
        logger.error(f"Database error adjusting item #{item_id}: {e}")
        raise PersistenceError("Could not adjust stock, please try again") from e

    logger.info(f"Adjusted item #{item_id} by {delta} to {new_quantity}")
    check_stock_alert(item_id)
    return item


def check_stock_alert(item_id: int) -> Optional[InventoryAlert]:
    """
    Open a low_stock/out_of_stock alert when the item is at or below its
    minimum and no unresolved stock alert exists yet.

    Failures are logged and ignored; the stock change that triggered the
    check stands either way.
    """
    try:
        with transaction.atomic():
            item = InventoryItem.objects.select_for_update().get(id=item_id)
            if item.quantity > item.minimum_quantity:
                return None

            open_alert = InventoryAlert.objects.filter(
                item=item,
                is_resolved=False,
                alert_type__in=InventoryAlert.STOCK_ALERT_TYPES
            ).exists()
            if open_alert:
                return None

            alert = InventoryAlert.objects.create(
                item=item,
                alert_type=(
                    InventoryAlert.AlertType.OUT_OF_STOCK if item.quantity == 0
                    else InventoryAlert.AlertType.LOW_STOCK
                ),
                threshold_value=item.minimum_quantity,
                current_value=item.quantity,
            )
    except Exception as e:
        logger.error(f"Error checking stock alert for item #{item_id}: {e}")
        return None

    logger.warning(
        f"{alert.alert_type} alert for {item.item_name}: "
        f"{item.quantity} {item.unit} (minimum {item.minimum_quantity})"
    )
    return alert


def resolve_alert(alert_id: int) -> InventoryAlert:
    """
    Mark an alert as handled. Stock is not re-checked.

    Raises:
        NotFoundError: If the alert doesn't exist
    """
    try:
        alert = InventoryAlert.objects.get(id=alert_id)
    except InventoryAlert.DoesNotExist:
        raise NotFoundError(f"Alert {alert_id} not found")

    if alert.is_resolved:
        return alert

    alert.is_resolved = True
    alert.resolved_at = timezone.now()
    try:
        alert.save(update_fields=['is_resolved', 'resolved_at'])
    except DatabaseError as e:
        logger.error(f"Database error resolving alert #{alert_id}: {e}")
        raise PersistenceError("Could not resolve alert, please try again") from e

    logger.info(f"Resolved alert #{alert_id} for item #{alert.item_id}")
    return alert


def recent_transactions(limit: Optional[int] = None, item_id: Optional[int] = None):
    """Newest ledger entries with item name and employee joined in."""
    queryset = InventoryTransaction.objects.select_related('item', 'employee')
    if item_id is not None:
        queryset = queryset.filter(item_id=item_id)
    return queryset.order_by('-created_at', '-id')[:limit or settings.RECENT_TRANSACTION_LIMIT]


def unresolved_alerts():
    return InventoryAlert.objects.select_related('item').filter(
        is_resolved=False
    ).order_by('-created_at')


def ledger_balance(item_id: int) -> Decimal:
    """Sum of all transaction quantities for an item."""
    total = InventoryTransaction.objects.filter(item_id=item_id).aggregate(
        total=Sum('quantity')
    )['total']
    return total if total is not None else ZERO


def inventory_overview() -> Dict:
    """Item counts, stock value and open alerts for the dashboard."""
    value_expr = ExpressionWrapper(
        F('quantity') * F('price_per_unit'),
        output_field=DecimalField(max_digits=20, decimal_places=4)
    )
    stats = InventoryItem.objects.aggregate(
        total_items=Count('id'),
        low_stock_items=Count('id', filter=Q(quantity__lte=F('minimum_quantity'))),
        out_of_stock_items=Count('id', filter=Q(quantity=0)),
        stock_value=Sum(value_expr),
    )
    stats['stock_value'] = str(Decimal(stats['stock_value'] or ZERO).quantize(CENT))
    stats['open_alerts'] = InventoryAlert.objects.filter(is_resolved=False).count()
    return stats
