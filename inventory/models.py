"""
Inventory Models - Stock of cleaning supplies and equipment.

Models:
    - InventoryItem: Current stock level per item (never negative)
    - InventoryTransaction: Append-only ledger of every stock change
    - InventoryAlert: Low / out of stock signals, resolved manually
"""
from decimal import Decimal

from django.core.validators import MinValueValidator
from django.db import models

from scheduling.models import Employee, Task


class InventoryItem(models.Model):
    """
    A stocked consumable or piece of equipment.

    quantity is only changed through the ledger services; the check
    constraint keeps it from going below zero even for raw updates.
    """

    class Category(models.TextChoices):
        CLEANING_SUPPLIES = 'cleaning_supplies', 'Rengøringsmidler'
        EQUIPMENT = 'equipment', 'Udstyr'
        CONSUMABLES = 'consumables', 'Forbrugsvarer'
        OTHER = 'other', 'Andet'

    item_name = models.CharField(
        max_length=200,
        db_index=True,
        help_text="Item name for display and search"
    )
    category = models.CharField(
        max_length=30,
        choices=Category.choices,
        default=Category.OTHER,
        db_index=True
    )
    quantity = models.DecimalField(
        max_digits=10,
        decimal_places=2,
        default=Decimal('0'),
        validators=[MinValueValidator(Decimal('0'))],
        help_text="Current stock quantity"
    )
    minimum_quantity = models.DecimalField(
        max_digits=10,
        decimal_places=2,
        default=Decimal('0'),
        validators=[MinValueValidator(Decimal('0'))],
        help_text="Threshold for low stock alerts"
    )
    unit = models.CharField(max_length=30, default='stk')
    price_per_unit = models.DecimalField(
        max_digits=10,
        decimal_places=2,
        default=Decimal('0.00'),
        validators=[MinValueValidator(Decimal('0.00'))],
        help_text="Cost per unit"
    )
    supplier = models.CharField(max_length=200, blank=True, default='')
    last_restocked = models.DateTimeField(null=True, blank=True)
    notes = models.TextField(blank=True, default='')
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ['item_name']
        constraints = [
            models.CheckConstraint(
                condition=models.Q(quantity__gte=0),
                name='inventory_item_quantity_non_negative'
            )
        ]
        indexes = [
            models.Index(fields=['category', 'item_name']),
        ]

    def __str__(self):
        return f"{self.item_name}: {self.quantity} {self.unit}"

    @property
    def is_low_stock(self) -> bool:
        """Check if stock is at or below the minimum."""
        return self.quantity <= self.minimum_quantity

    @property
    def is_out_of_stock(self) -> bool:
        return self.quantity == 0

    @property
    def stock_value(self) -> Decimal:
        return self.quantity * self.price_per_unit


class ImmutableRecordError(Exception):
    """Raised on an attempt to change or delete a ledger entry."""
    pass


class InventoryTransaction(models.Model):
    """
    Ledger entry for one stock change.

    quantity is signed: positive for restock, negative for usage and
    waste, either sign for adjustment. Rows are written once and never
    updated or deleted.
    """

    class Type(models.TextChoices):
        RESTOCK = 'restock', 'Genopfyldning'
        USAGE = 'usage', 'Forbrug'
        ADJUSTMENT = 'adjustment', 'Justering'
        WASTE = 'waste', 'Spild'

    item = models.ForeignKey(
        InventoryItem,
        on_delete=models.PROTECT,
        related_name='transactions'
    )
    type = models.CharField(max_length=20, choices=Type.choices, db_index=True)
    quantity = models.DecimalField(max_digits=10, decimal_places=2)
    cost_total = models.DecimalField(max_digits=12, decimal_places=2, null=True, blank=True)
    notes = models.TextField(blank=True, default='')
    employee = models.ForeignKey(
        Employee,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='inventory_transactions'
    )
    task = models.ForeignKey(
        Task,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='inventory_transactions'
    )
    created_at = models.DateTimeField(auto_now_add=True, db_index=True)

    class Meta:
        ordering = ['-created_at', '-id']
        indexes = [
            models.Index(fields=['item', 'created_at']),
        ]

    def __str__(self):
        return f"{self.type} {self.quantity} of {self.item_id}"

    def save(self, *args, **kwargs):
        if not self._state.adding:
            raise ImmutableRecordError("Inventory transactions cannot be modified")
        super().save(*args, **kwargs)

    def delete(self, *args, **kwargs):
        raise ImmutableRecordError("Inventory transactions cannot be deleted")


class InventoryAlert(models.Model):
    """
    Signal that an item dropped to or below its minimum.

    At most one unresolved low_stock/out_of_stock alert per item; the
    ledger service checks before creating one.
    """

    class AlertType(models.TextChoices):
        LOW_STOCK = 'low_stock', 'Lav beholdning'
        OUT_OF_STOCK = 'out_of_stock', 'Udsolgt'
        EXPIRING_SOON = 'expiring_soon', 'Udløber snart'

    STOCK_ALERT_TYPES = [AlertType.LOW_STOCK, AlertType.OUT_OF_STOCK]

    item = models.ForeignKey(
        InventoryItem,
        on_delete=models.CASCADE,
        related_name='alerts'
    )
    alert_type = models.CharField(max_length=20, choices=AlertType.choices)
    threshold_value = models.DecimalField(max_digits=10, decimal_places=2)
    current_value = models.DecimalField(max_digits=10, decimal_places=2)
    is_resolved = models.BooleanField(default=False, db_index=True)
    resolved_at = models.DateTimeField(null=True, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ['-created_at']
        indexes = [
            models.Index(fields=['item', 'is_resolved']),
        ]

    def __str__(self):
        state = 'resolved' if self.is_resolved else 'open'
        return f"{self.alert_type} for {self.item_id} ({state})"
