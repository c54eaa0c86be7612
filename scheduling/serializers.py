"""
Serializers for scheduling models.
"""
from decimal import Decimal

from rest_framework import serializers
from .models import Customer, Employee, Task, BookingRequest, ActivityLog


class CustomerSerializer(serializers.ModelSerializer):
    """Serializer for Customer model."""
    task_count = serializers.SerializerMethodField()

    class Meta:
        model = Customer
        fields = [
            'id', 'name', 'address', 'phone', 'email',
            'key_location', 'alarm_code', 'cleaning_type', 'frequency',
            'hourly_rate', 'notes', 'task_count',
            'created_at', 'updated_at'
        ]
        read_only_fields = ['id', 'created_at', 'updated_at']

    def get_task_count(self, obj):
        return obj.tasks.count()


class CustomerMinimalSerializer(serializers.ModelSerializer):
    """Minimal serializer for nested customer representation."""
    class Meta:
        model = Customer
        fields = ['id', 'name', 'address', 'hourly_rate']


class EmployeeSerializer(serializers.ModelSerializer):
    """Serializer for Employee model."""
    class Meta:
        model = Employee
        fields = ['id', 'name', 'email', 'phone', 'role', 'hourly_rate', 'created_at', 'updated_at']
        read_only_fields = ['id', 'created_at', 'updated_at']


class TaskSerializer(serializers.ModelSerializer):
    """
    Read serializer for tasks; denormalized names come from the snapshot
    taken at creation.
    """
    billable_hours = serializers.DecimalField(max_digits=5, decimal_places=2, read_only=True)

    class Meta:
        model = Task
        fields = [
            'id', 'customer', 'customer_name', 'customer_address',
            'employee', 'employee_name',
            'scheduled_date', 'start_time',
            'estimated_duration_hours', 'actual_duration_hours', 'billable_hours',
            'status', 'notes', 'check_in_time', 'check_out_time',
            'invoice_generated', 'invoiced_at',
            'created_at', 'updated_at'
        ]


class TaskCreateSerializer(serializers.Serializer):
    """
    Request format:
    {
        "customer_id": 1,
        "employee_id": 2,
        "scheduled_date": "2024-03-01",
        "start_time": "09:00",
        "estimated_duration_hours": "3.0",
        "notes": ""
    }
    """
    customer_id = serializers.IntegerField(min_value=1)
    employee_id = serializers.IntegerField(min_value=1, required=False, allow_null=True)
    scheduled_date = serializers.DateField()
    start_time = serializers.TimeField()
    estimated_duration_hours = serializers.DecimalField(
        max_digits=5,
        decimal_places=2,
        min_value=Decimal('0.01')
    )
    notes = serializers.CharField(required=False, allow_blank=True, default='')


class TaskStatusSerializer(serializers.Serializer):
    status = serializers.ChoiceField(choices=Task.Status.choices)
    actual_duration_hours = serializers.DecimalField(
        max_digits=5,
        decimal_places=2,
        min_value=Decimal('0.01'),
        required=False,
        allow_null=True
    )


class BookingRequestSerializer(serializers.ModelSerializer):
    """Read serializer for booking requests."""
    customer = CustomerMinimalSerializer(read_only=True)

    class Meta:
        model = BookingRequest
        fields = [
            'id', 'name', 'phone', 'email', 'address', 'zip_city', 'sqm',
            'cleaning_type', 'desired_start_date', 'frequency_preference',
            'message', 'status', 'customer', 'created_at', 'updated_at'
        ]


class BookingRequestCreateSerializer(serializers.Serializer):
    """
    Request format:
    {
        "name": "Camilla Holm",
        "phone": "+45 22 33 44 55",
        "email": "camilla@example.dk",
        "address": "Jagtvej 14",
        "zip_city": "2200 København N",
        "sqm": 85,
        "cleaning_type": "STANDARD",
        "desired_start_date": "2024-04-01",
        "frequency_preference": "BI_WEEKLY",
        "message": "Har en hund"
    }
    """
    name = serializers.CharField(max_length=200)
    phone = serializers.CharField(max_length=50)
    email = serializers.EmailField()
    address = serializers.CharField(max_length=300)
    zip_city = serializers.CharField(max_length=100)
    sqm = serializers.IntegerField(min_value=1, required=False, allow_null=True)
    cleaning_type = serializers.ChoiceField(choices=Customer.CleaningType.choices)
    desired_start_date = serializers.DateField()
    frequency_preference = serializers.ChoiceField(
        choices=Customer.Frequency.choices,
        required=False,
        allow_blank=True,
        default=''
    )
    message = serializers.CharField(required=False, allow_blank=True, default='')


class BookingRequestStatusSerializer(serializers.Serializer):
    status = serializers.ChoiceField(choices=BookingRequest.Status.choices)


class ActivityLogSerializer(serializers.ModelSerializer):
    class Meta:
        model = ActivityLog
        fields = ['id', 'type', 'description', 'related_id', 'created_at']
