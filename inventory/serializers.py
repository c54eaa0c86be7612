"""
Serializers for inventory models.
Provides data validation and JSON conversion for API endpoints.
"""
from decimal import Decimal

from rest_framework import serializers
from .models import InventoryItem, InventoryTransaction, InventoryAlert


class InventoryItemSerializer(serializers.ModelSerializer):
    """
    Serializer for InventoryItem. quantity is read only after creation;
    stock changes go through the restock/usage/waste/adjust endpoints.
    """
    is_low_stock = serializers.BooleanField(read_only=True)
    is_out_of_stock = serializers.BooleanField(read_only=True)
    stock_value = serializers.DecimalField(max_digits=14, decimal_places=2, read_only=True)

    class Meta:
        model = InventoryItem
        fields = [
            'id', 'item_name', 'category', 'quantity', 'minimum_quantity',
            'unit', 'price_per_unit', 'supplier', 'last_restocked', 'notes',
            'is_low_stock', 'is_out_of_stock', 'stock_value',
            'created_at', 'updated_at'
        ]
        read_only_fields = ['id', 'last_restocked', 'created_at', 'updated_at']

    def update(self, instance, validated_data):
        validated_data.pop('quantity', None)
        return super().update(instance, validated_data)


class InventoryItemMinimalSerializer(serializers.ModelSerializer):
    """Minimal serializer for nested item representation."""
    class Meta:
        model = InventoryItem
        fields = ['id', 'item_name', 'unit']


class InventoryTransactionSerializer(serializers.ModelSerializer):
    """
    Ledger entry with item name joined in for display.
    Uses select_related('item', 'employee') in view.
    """
    item_name = serializers.CharField(source='item.item_name', read_only=True)
    employee_name = serializers.CharField(source='employee.name', read_only=True, default=None)

    class Meta:
        model = InventoryTransaction
        fields = [
            'id', 'item', 'item_name', 'type', 'quantity', 'cost_total',
            'notes', 'employee', 'employee_name', 'task', 'created_at'
        ]


class InventoryAlertSerializer(serializers.ModelSerializer):
    item = InventoryItemMinimalSerializer(read_only=True)

    class Meta:
        model = InventoryAlert
        fields = [
            'id', 'item', 'alert_type', 'threshold_value', 'current_value',
            'is_resolved', 'resolved_at', 'created_at'
        ]


class RestockSerializer(serializers.Serializer):
    """
    Request format:
    {
        "quantity": "10",
        "cost_per_unit": "24.95",
        "notes": "Ugentlig levering"
    }
    """
    quantity = serializers.DecimalField(max_digits=10, decimal_places=2, min_value=Decimal('0.01'))
    cost_per_unit = serializers.DecimalField(
        max_digits=10,
        decimal_places=2,
        min_value=Decimal('0'),
        required=False,
        allow_null=True
    )
    notes = serializers.CharField(required=False, allow_blank=True, default='')


class UsageSerializer(serializers.Serializer):
    quantity = serializers.DecimalField(max_digits=10, decimal_places=2, min_value=Decimal('0.01'))
    task_id = serializers.IntegerField(min_value=1, required=False, allow_null=True)
    employee_id = serializers.IntegerField(min_value=1, required=False, allow_null=True)
    notes = serializers.CharField(required=False, allow_blank=True, default='')


class WasteSerializer(serializers.Serializer):
    quantity = serializers.DecimalField(max_digits=10, decimal_places=2, min_value=Decimal('0.01'))
    employee_id = serializers.IntegerField(min_value=1, required=False, allow_null=True)
    notes = serializers.CharField(required=False, allow_blank=True, default='')


class AdjustSerializer(serializers.Serializer):
    new_quantity = serializers.DecimalField(max_digits=10, decimal_places=2, min_value=Decimal('0'))
    employee_id = serializers.IntegerField(min_value=1, required=False, allow_null=True)
    notes = serializers.CharField(required=False, allow_blank=True, default='')
