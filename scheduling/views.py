"""
Scheduling API Views.

Implements:
- CRUD for customers and employees
- Task planning, status transitions and the "ready to invoice" list
- Booking requests from the public booking form
- Recent activity feed
"""
import logging

from django.db.models import Q
from rest_framework import generics, status
from rest_framework.response import Response
from rest_framework.views import APIView

from core.api import service_error_response, unexpected_error_response
from core.exceptions import ServiceError
from .models import Customer, Employee, Task, BookingRequest, ActivityLog
from .serializers import (
    CustomerSerializer,
    EmployeeSerializer,
    TaskSerializer,
    TaskCreateSerializer,
    TaskStatusSerializer,
    BookingRequestSerializer,
    BookingRequestCreateSerializer,
    BookingRequestStatusSerializer,
    ActivityLogSerializer,
)
from .services import (
    create_task,
    update_task_status,
    tasks_ready_to_invoice,
    log_activity,
    recent_activity,
    create_booking_request,
    update_booking_request_status,
    delete_booking_request,
    booking_requests,
)

logger = logging.getLogger(__name__)


# =============================================================================
# Customer Views
# =============================================================================

class CustomerListCreateView(generics.ListCreateAPIView):
    """
    GET: List customers, newest first
    POST: Create a customer

    Query Parameters:
        - q: Search in name, address and email
    """
    serializer_class = CustomerSerializer

    def get_queryset(self):
        queryset = Customer.objects.all()
        keyword = self.request.query_params.get('q', '').strip()
        if keyword:
            queryset = queryset.filter(
                Q(name__icontains=keyword) |
                Q(address__icontains=keyword) |
                Q(email__icontains=keyword)
            )
        return queryset.order_by('-created_at')

    def perform_create(self, serializer):
        customer = serializer.save()
        log_activity(ActivityLog.Type.NEW_CUSTOMER, f"Ny kunde: {customer.name}", related_id=customer.id)


class CustomerDetailView(generics.RetrieveUpdateDestroyAPIView):
    queryset = Customer.objects.all()
    serializer_class = CustomerSerializer


# =============================================================================
# Employee Views
# =============================================================================

class EmployeeListCreateView(generics.ListCreateAPIView):
    queryset = Employee.objects.all()
    serializer_class = EmployeeSerializer

    def perform_create(self, serializer):
        employee = serializer.save()
        log_activity(ActivityLog.Type.NEW_EMPLOYEE, f"Ny medarbejder: {employee.name}", related_id=employee.id)


class EmployeeDetailView(generics.RetrieveUpdateDestroyAPIView):
    queryset = Employee.objects.all()
    serializer_class = EmployeeSerializer


# =============================================================================
# Task Views
# =============================================================================

class TaskListCreateView(generics.ListCreateAPIView):
    """
    GET: List tasks
    POST: Plan a new task

    Query Parameters (GET):
        - date: Only tasks scheduled on this date (YYYY-MM-DD)
        - date_from / date_to: Scheduled date range
        - status: Filter by status
        - employee_id: Filter by assigned employee
    """

    def get_serializer_class(self):
        if self.request.method == 'POST':
            return TaskCreateSerializer
        return TaskSerializer

    def get_queryset(self):
        queryset = Task.objects.select_related('customer', 'employee')
        params = self.request.query_params

        if params.get('date'):
            queryset = queryset.filter(scheduled_date=params['date'])
        if params.get('date_from'):
            queryset = queryset.filter(scheduled_date__gte=params['date_from'])
        if params.get('date_to'):
            queryset = queryset.filter(scheduled_date__lte=params['date_to'])

        status_filter = params.get('status', '').upper()
        if status_filter in Task.Status.values:
            queryset = queryset.filter(status=status_filter)

        employee_id = params.get('employee_id')
        if employee_id:
            queryset = queryset.filter(employee_id=employee_id)

        return queryset.order_by('scheduled_date', 'start_time')

    def create(self, request, *args, **kwargs):
        serializer = TaskCreateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        try:
            task = create_task(**serializer.validated_data)
        except ServiceError as e:
            return service_error_response(e)
        except Exception as e:
            return unexpected_error_response(e)

        return Response(TaskSerializer(task).data, status=status.HTTP_201_CREATED)


class TaskDetailView(generics.RetrieveDestroyAPIView):
    serializer_class = TaskSerializer

    def get_queryset(self):
        return Task.objects.select_related('customer', 'employee')


class TaskStatusView(APIView):
    """
    POST: Change task status.

    Request Body:
    {
        "status": "COMPLETED",
        "actual_duration_hours": "2.5"
    }
    """

    def post(self, request, pk):
        serializer = TaskStatusSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        try:
            task = update_task_status(
                pk,
                serializer.validated_data['status'],
                serializer.validated_data.get('actual_duration_hours'),
            )
        except ServiceError as e:
            return service_error_response(e)
        except Exception as e:
            return unexpected_error_response(e)

        return Response(TaskSerializer(task).data)


class TasksReadyToInvoiceView(generics.ListAPIView):
    """
    GET: Completed tasks that have not been invoiced yet.
    """
    serializer_class = TaskSerializer

    def get_queryset(self):
        return tasks_ready_to_invoice()


# =============================================================================
# Booking Request Views
# =============================================================================

class BookingRequestListCreateView(generics.ListCreateAPIView):
    """
    GET: List booking requests, newest first
    POST: Submit a booking request (starts as pending)

    Query Parameters (GET):
        - status: Filter by status
    """

    def get_serializer_class(self):
        if self.request.method == 'POST':
            return BookingRequestCreateSerializer
        return BookingRequestSerializer

    def get_queryset(self):
        status_filter = self.request.query_params.get('status')
        if status_filter not in BookingRequest.Status.values:
            status_filter = None
        return booking_requests(status_filter)

    def create(self, request, *args, **kwargs):
        serializer = BookingRequestCreateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        try:
            booking = create_booking_request(serializer.validated_data)
        except ServiceError as e:
            return service_error_response(e)
        except Exception as e:
            return unexpected_error_response(e)

        return Response(BookingRequestSerializer(booking).data, status=status.HTTP_201_CREATED)


class BookingRequestDetailView(generics.RetrieveDestroyAPIView):
    queryset = BookingRequest.objects.select_related('customer')
    serializer_class = BookingRequestSerializer

    def destroy(self, request, *args, **kwargs):
        try:
            delete_booking_request(kwargs['pk'])
        except ServiceError as e:
            return service_error_response(e)
        except Exception as e:
            return unexpected_error_response(e)

        return Response(status=status.HTTP_204_NO_CONTENT)


class BookingRequestStatusView(APIView):
    """
    POST: Change booking request status.
    Converting to customer creates the Customer record.

    Request Body:
    {
        "status": "contacted"
    }
    """

    def post(self, request, pk):
        serializer = BookingRequestStatusSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        try:
            booking = update_booking_request_status(pk, serializer.validated_data['status'])
        except ServiceError as e:
            return service_error_response(e)
        except Exception as e:
            return unexpected_error_response(e)

        return Response(BookingRequestSerializer(booking).data)


# =============================================================================
# Activity Views
# =============================================================================

class ActivityLogListView(generics.ListAPIView):
    """
    GET: Most recent activity entries.

    Query Parameters:
        - limit: Number of entries (default 10, max 100)
    """
    serializer_class = ActivityLogSerializer

    def get_queryset(self):
        limit = self.request.query_params.get('limit', '')
        limit = min(int(limit), 100) if limit.isdigit() and int(limit) > 0 else 10
        return recent_activity(limit)
