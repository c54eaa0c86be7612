"""
Django Admin configuration for invoice models.
"""
from django.contrib import admin
from .models import Invoice


@admin.register(Invoice)
class InvoiceAdmin(admin.ModelAdmin):
    list_display = [
        'invoice_number', 'customer_name', 'task_date', 'hours',
        'hourly_rate', 'total_amount', 'status', 'due_date'
    ]
    list_filter = ['status', 'issued_date', 'due_date']
    search_fields = ['invoice_number', 'customer_name']
    ordering = ['-created_at']
    raw_id_fields = ['task', 'customer']
    readonly_fields = [
        'invoice_number', 'task', 'customer', 'customer_name', 'customer_address',
        'task_date', 'hours', 'hourly_rate', 'total_amount',
        'issued_date', 'due_date', 'paid_date', 'created_at', 'updated_at'
    ]
