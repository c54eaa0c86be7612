"""
Django Admin configuration for scheduling models.
"""
from django.contrib import admin
from .models import Customer, Employee, Task, BookingRequest, ActivityLog


@admin.register(Customer)
class CustomerAdmin(admin.ModelAdmin):
    list_display = ['id', 'name', 'address', 'cleaning_type', 'frequency', 'hourly_rate', 'created_at']
    list_filter = ['cleaning_type', 'frequency']
    search_fields = ['name', 'address', 'email']
    ordering = ['name']


@admin.register(Employee)
class EmployeeAdmin(admin.ModelAdmin):
    list_display = ['id', 'name', 'role', 'phone', 'email']
    search_fields = ['name', 'email']
    ordering = ['name']


@admin.register(Task)
class TaskAdmin(admin.ModelAdmin):
    list_display = [
        'id', 'customer_name', 'employee_name', 'scheduled_date',
        'start_time', 'status', 'invoice_generated'
    ]
    list_filter = ['status', 'invoice_generated', 'scheduled_date']
    search_fields = ['customer_name', 'employee_name']
    ordering = ['-scheduled_date']
    raw_id_fields = ['customer', 'employee']
    readonly_fields = ['invoice_generated', 'invoiced_at', 'check_in_time', 'check_out_time']


@admin.register(BookingRequest)
class BookingRequestAdmin(admin.ModelAdmin):
    list_display = ['id', 'name', 'zip_city', 'cleaning_type', 'desired_start_date', 'status', 'created_at']
    list_filter = ['status', 'cleaning_type']
    search_fields = ['name', 'email', 'phone', 'address']
    ordering = ['-created_at']
    raw_id_fields = ['customer']


@admin.register(ActivityLog)
class ActivityLogAdmin(admin.ModelAdmin):
    list_display = ['id', 'type', 'description', 'related_id', 'created_at']
    list_filter = ['type']
    ordering = ['-created_at']
    readonly_fields = ['type', 'description', 'related_id', 'created_at']
