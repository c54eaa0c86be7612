"""
Inventory API Views.

Implements:
- Item listing, creation and editing
- Stock changes (restock, usage, waste, adjustment) through the ledger service
- Recent transactions, open alerts and alert resolution
- Item name autocomplete with rate limiting
"""
import logging

from django.db.models import F
from rest_framework import generics, status
from rest_framework.views import APIView
from rest_framework.response import Response

from core.api import service_error_response, unexpected_error_response
from core.exceptions import ServiceError
from core.rate_limiting import rate_limit
from .models import InventoryItem, InventoryAlert
from .serializers import (
    InventoryItemSerializer,
    InventoryTransactionSerializer,
    InventoryAlertSerializer,
    RestockSerializer,
    UsageSerializer,
    WasteSerializer,
    AdjustSerializer,
)
from . import services

logger = logging.getLogger(__name__)


# =============================================================================
# Item Views
# =============================================================================

class InventoryItemListCreateView(generics.ListCreateAPIView):
    """
    GET: List items
    POST: Add a new item (initial quantity is the baseline, no transaction)

    Query Parameters:
        - q: Search in item name
        - category: Filter by category
        - low_stock: Show only items at/below minimum (true/false)
    """
    serializer_class = InventoryItemSerializer

    def get_queryset(self):
        queryset = InventoryItem.objects.all()

        keyword = self.request.query_params.get('q', '').strip()
        if keyword:
            queryset = queryset.filter(item_name__icontains=keyword)

        category = self.request.query_params.get('category')
        if category and category != 'all':
            queryset = queryset.filter(category=category)

        low_stock = self.request.query_params.get('low_stock', '').lower()
        if low_stock == 'true':
            queryset = queryset.filter(quantity__lte=F('minimum_quantity'))

        return queryset.order_by('item_name')

    def create(self, request, *args, **kwargs):
        serializer = InventoryItemSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        try:
            item = services.add_inventory_item(serializer.validated_data)
        except ServiceError as e:
            return service_error_response(e)
        except Exception as e:
            return unexpected_error_response(e)

        return Response(InventoryItemSerializer(item).data, status=status.HTTP_201_CREATED)


class InventoryItemDetailView(generics.RetrieveUpdateAPIView):
    """
    GET: Retrieve an item
    PUT/PATCH: Update descriptive fields (quantity is ignored)
    """
    queryset = InventoryItem.objects.all()
    serializer_class = InventoryItemSerializer


class InventoryItemSearchView(APIView):
    """
    GET: Fast prefix-matching autocomplete for item names.

    Query Parameters:
        - q: Search query (minimum 2 characters)

    Returns top 10 matching items.
    Rate limited to 20 requests per minute.
    """

    @rate_limit(max_requests=20, window_seconds=60)
    def get(self, request):
        query = request.query_params.get('q', '').strip()

        if len(query) < 2:
            return Response(
                {'error': 'Query must be at least 2 characters'},
                status=status.HTTP_400_BAD_REQUEST
            )

        items = InventoryItem.objects.filter(
            item_name__istartswith=query
        ).values('id', 'item_name', 'unit', 'quantity')[:10]

        return Response(list(items))


class InventoryOverviewView(APIView):
    """
    GET: Item counts, stock value and open alerts.
    """

    def get(self, request):
        try:
            overview = services.inventory_overview()
        except Exception as e:
            return unexpected_error_response(e)

        return Response(overview)


# =============================================================================
# Stock Change Views
# =============================================================================

class StockChangeView(APIView):
    """
    Base view for stock changes: validate the body, call the ledger
    service, return the updated item.
    """
    serializer_class = None

    def perform_change(self, item_id, data):
        raise NotImplementedError

    def post(self, request, pk):
        serializer = self.serializer_class(data=request.data)
        serializer.is_valid(raise_exception=True)

        try:
            item = self.perform_change(pk, serializer.validated_data)
        except ServiceError as e:
            return service_error_response(e)
        except Exception as e:
            return unexpected_error_response(e)

        return Response(InventoryItemSerializer(item).data)


class RestockView(StockChangeView):
    serializer_class = RestockSerializer

    def perform_change(self, item_id, data):
        return services.restock_item(
            item_id, data['quantity'], data.get('cost_per_unit'), data.get('notes', '')
        )


class UsageView(StockChangeView):
    """
    POST: Record usage. Responds 409 with the available quantity when
    stock is insufficient.
    """
    serializer_class = UsageSerializer

    def perform_change(self, item_id, data):
        return services.record_usage(
            item_id,
            data['quantity'],
            task_id=data.get('task_id'),
            employee_id=data.get('employee_id'),
            notes=data.get('notes', ''),
        )


class WasteView(StockChangeView):
    serializer_class = WasteSerializer

    def perform_change(self, item_id, data):
        return services.record_waste(
            item_id,
            data['quantity'],
            employee_id=data.get('employee_id'),
            notes=data.get('notes', ''),
        )


class AdjustView(StockChangeView):
    serializer_class = AdjustSerializer

    def perform_change(self, item_id, data):
        return services.adjust_stock(
            item_id,
            data['new_quantity'],
            notes=data.get('notes', ''),
            employee_id=data.get('employee_id'),
        )


# =============================================================================
# Ledger and Alert Views
# =============================================================================

class InventoryTransactionListView(generics.ListAPIView):
    """
    GET: Most recent transactions with item name.

    Query Parameters:
        - item_id: Only transactions for this item
        - limit: Number of rows (default 50)
    """
    serializer_class = InventoryTransactionSerializer

    def get_queryset(self):
        item_id = self.request.query_params.get('item_id')
        limit = self.request.query_params.get('limit')
        try:
            limit = int(limit) if limit else None
        except ValueError:
            limit = None
        return services.recent_transactions(
            limit=limit,
            item_id=int(item_id) if item_id and item_id.isdigit() else None
        )


class InventoryAlertListView(generics.ListAPIView):
    """
    GET: Unresolved alerts, newest first. ?all=true includes resolved ones.
    """
    serializer_class = InventoryAlertSerializer

    def get_queryset(self):
        if self.request.query_params.get('all', '').lower() == 'true':
            return InventoryAlert.objects.select_related('item').order_by('-created_at')
        return services.unresolved_alerts()


class ResolveAlertView(APIView):
    """
    POST: Mark an alert as resolved.
    """

    def post(self, request, pk):
        try:
            alert = services.resolve_alert(pk)
        except ServiceError as e:
            return service_error_response(e)
        except Exception as e:
            return unexpected_error_response(e)

        return Response(InventoryAlertSerializer(alert).data)
