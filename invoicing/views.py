"""
Invoice API Views.

Implements:
- GET /invoices/ - List invoices
- POST /invoices/from-task/ - Create the invoice for a completed task
- GET/DELETE /invoices/{id}/ - Invoice detail, delete drafts
- POST /invoices/{id}/status/ - Status transition
- GET /invoices/{id}/document/ - Data for the printable document
- GET /invoices/stats/ - Totals per status
"""
import logging

from rest_framework import generics, status
from rest_framework.response import Response
from rest_framework.views import APIView

from core.api import service_error_response, unexpected_error_response
from core.exceptions import ServiceError
from .models import Invoice
from .serializers import (
    InvoiceSerializer,
    InvoiceListSerializer,
    InvoiceCreateSerializer,
    InvoiceStatusSerializer,
)
from .services import (
    create_invoice_from_task,
    update_invoice_status,
    delete_invoice,
    get_invoice_summary,
    invoice_stats,
)

logger = logging.getLogger(__name__)


class InvoiceListView(generics.ListAPIView):
    """
    GET: List invoices, newest first

    Query Parameters:
        - status: Filter by status (draft, sent, paid, overdue)
        - customer_id: Filter by customer
    """
    serializer_class = InvoiceListSerializer

    def get_queryset(self):
        queryset = Invoice.objects.all()

        status_filter = self.request.query_params.get('status', '').lower()
        if status_filter in Invoice.Status.values:
            queryset = queryset.filter(status=status_filter)

        customer_id = self.request.query_params.get('customer_id')
        if customer_id:
            queryset = queryset.filter(customer_id=customer_id)

        return queryset.order_by('-created_at')


class InvoiceFromTaskView(APIView):
    """
    POST: Create an invoice from a completed task.

    Request Body:
    {
        "task_id": 1
    }

    Returns:
        - 201: Invoice created
        - 400: Task not completed or already invoiced
        - 404: Task or customer not found
    """

    def post(self, request):
        serializer = InvoiceCreateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        try:
            invoice = create_invoice_from_task(serializer.validated_data['task_id'])
        except ServiceError as e:
            return service_error_response(e)
        except Exception as e:
            return unexpected_error_response(e)

        return Response(InvoiceSerializer(invoice).data, status=status.HTTP_201_CREATED)


class InvoiceDetailView(generics.RetrieveDestroyAPIView):
    """
    GET: Retrieve an invoice
    DELETE: Delete a draft invoice
    """
    queryset = Invoice.objects.all()
    serializer_class = InvoiceSerializer

    def destroy(self, request, *args, **kwargs):
        try:
            delete_invoice(kwargs['pk'])
        except ServiceError as e:
            return service_error_response(e)
        except Exception as e:
            return unexpected_error_response(e)
        return Response(status=status.HTTP_204_NO_CONTENT)


class InvoiceStatusView(APIView):
    """
    POST: Change invoice status.

    Request Body:
    {
        "status": "paid"
    }
    """

    def post(self, request, pk):
        serializer = InvoiceStatusSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        try:
            invoice = update_invoice_status(pk, serializer.validated_data['status'])
        except ServiceError as e:
            return service_error_response(e)
        except Exception as e:
            return unexpected_error_response(e)

        return Response(InvoiceSerializer(invoice).data)


class InvoiceDocumentView(APIView):
    """
    GET: Invoice document data (header, customer, line item, VAT split).
    """

    def get(self, request, pk):
        try:
            summary = get_invoice_summary(pk)
        except ServiceError as e:
            return service_error_response(e)
        except Exception as e:
            return unexpected_error_response(e)

        return Response(summary)


class InvoiceStatsView(APIView):
    """
    GET: Invoice counts and amounts per status.
    """

    def get(self, request):
        try:
            stats = invoice_stats()
        except Exception as e:
            return unexpected_error_response(e)

        return Response(stats)
