"""
URL routing for inventory API endpoints.
"""
from django.urls import path
from . import views

app_name = 'inventory'

urlpatterns = [
    # Items
    path('inventory/items/', views.InventoryItemListCreateView.as_view(), name='item-list'),
    path('inventory/items/search/', views.InventoryItemSearchView.as_view(), name='item-search'),
    path('inventory/items/<int:pk>/', views.InventoryItemDetailView.as_view(), name='item-detail'),
    path('inventory/overview/', views.InventoryOverviewView.as_view(), name='inventory-overview'),

    # Stock changes
    path('inventory/items/<int:pk>/restock/', views.RestockView.as_view(), name='item-restock'),
    path('inventory/items/<int:pk>/usage/', views.UsageView.as_view(), name='item-usage'),
    path('inventory/items/<int:pk>/waste/', views.WasteView.as_view(), name='item-waste'),
    path('inventory/items/<int:pk>/adjust/', views.AdjustView.as_view(), name='item-adjust'),

    # Ledger and alerts
    path('inventory/transactions/', views.InventoryTransactionListView.as_view(), name='transaction-list'),
    path('inventory/alerts/', views.InventoryAlertListView.as_view(), name='alert-list'),
    path('inventory/alerts/<int:pk>/resolve/', views.ResolveAlertView.as_view(), name='alert-resolve'),
]
