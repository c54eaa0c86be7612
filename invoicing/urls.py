"""
URL routing for invoice API endpoints.
"""
from django.urls import path
from . import views

app_name = 'invoicing'

urlpatterns = [
    path('invoices/', views.InvoiceListView.as_view(), name='invoice-list'),
    path('invoices/from-task/', views.InvoiceFromTaskView.as_view(), name='invoice-from-task'),
    path('invoices/stats/', views.InvoiceStatsView.as_view(), name='invoice-stats'),
    path('invoices/<int:pk>/', views.InvoiceDetailView.as_view(), name='invoice-detail'),
    path('invoices/<int:pk>/status/', views.InvoiceStatusView.as_view(), name='invoice-status'),
    path('invoices/<int:pk>/document/', views.InvoiceDocumentView.as_view(), name='invoice-document'),
]
