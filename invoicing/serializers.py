"""
Serializers for invoice models.
"""
from rest_framework import serializers
from .models import Invoice


class InvoiceSerializer(serializers.ModelSerializer):
    """
    Serializer for Invoice model. Every field is read only: invoices are
    created from tasks and only change status through the status endpoint.
    """
    subtotal_amount = serializers.DecimalField(max_digits=12, decimal_places=2, read_only=True)
    vat_amount = serializers.DecimalField(max_digits=12, decimal_places=2, read_only=True)

    class Meta:
        model = Invoice
        fields = [
            'id', 'invoice_number', 'task', 'customer',
            'customer_name', 'customer_address', 'task_date',
            'hours', 'hourly_rate', 'total_amount',
            'subtotal_amount', 'vat_amount',
            'status', 'issued_date', 'due_date', 'paid_date',
            'notes', 'created_at', 'updated_at'
        ]
        read_only_fields = [
            'id', 'invoice_number', 'task', 'customer',
            'customer_name', 'customer_address', 'task_date',
            'hours', 'hourly_rate', 'total_amount',
            'status', 'issued_date', 'due_date', 'paid_date',
            'notes', 'created_at', 'updated_at'
        ]


class InvoiceListSerializer(serializers.ModelSerializer):
    """Compact serializer for invoice lists."""
    class Meta:
        model = Invoice
        fields = [
            'id', 'invoice_number', 'customer_name', 'task_date',
            'total_amount', 'status', 'issued_date', 'due_date'
        ]


class InvoiceCreateSerializer(serializers.Serializer):
    """
    Request format:
    {
        "task_id": 1
    }
    """
    task_id = serializers.IntegerField(min_value=1)


class InvoiceStatusSerializer(serializers.Serializer):
    status = serializers.ChoiceField(choices=Invoice.Status.choices)
