"""
Django Admin configuration for inventory models.
"""
from django.contrib import admin
from .models import InventoryItem, InventoryTransaction, InventoryAlert


@admin.register(InventoryItem)
class InventoryItemAdmin(admin.ModelAdmin):
    list_display = ['id', 'item_name', 'category', 'quantity', 'minimum_quantity', 'unit', 'is_low_stock', 'updated_at']
    list_filter = ['category', 'updated_at']
    search_fields = ['item_name', 'supplier']
    ordering = ['item_name']
    readonly_fields = ['quantity', 'last_restocked', 'created_at', 'updated_at']

    def is_low_stock(self, obj):
        return obj.is_low_stock
    is_low_stock.boolean = True
    is_low_stock.short_description = 'Low Stock'


@admin.register(InventoryTransaction)
class InventoryTransactionAdmin(admin.ModelAdmin):
    list_display = ['id', 'item', 'type', 'quantity', 'cost_total', 'employee', 'task', 'created_at']
    list_filter = ['type', 'created_at']
    search_fields = ['item__item_name', 'notes']
    ordering = ['-created_at']
    raw_id_fields = ['item', 'employee', 'task']

    def has_add_permission(self, request):
        return False

    def has_change_permission(self, request, obj=None):
        return False

    def has_delete_permission(self, request, obj=None):
        return False


@admin.register(InventoryAlert)
class InventoryAlertAdmin(admin.ModelAdmin):
    list_display = ['id', 'item', 'alert_type', 'threshold_value', 'current_value', 'is_resolved', 'created_at']
    list_filter = ['alert_type', 'is_resolved']
    search_fields = ['item__item_name']
    ordering = ['-created_at']
    raw_id_fields = ['item']
