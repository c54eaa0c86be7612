"""
URL routing for scheduling API endpoints.
"""
from django.urls import path
from . import views

app_name = 'scheduling'

urlpatterns = [
    # Customers
    path('customers/', views.CustomerListCreateView.as_view(), name='customer-list'),
    path('customers/<int:pk>/', views.CustomerDetailView.as_view(), name='customer-detail'),

    # Employees
    path('employees/', views.EmployeeListCreateView.as_view(), name='employee-list'),
    path('employees/<int:pk>/', views.EmployeeDetailView.as_view(), name='employee-detail'),

    # Tasks
    path('tasks/', views.TaskListCreateView.as_view(), name='task-list'),
    path('tasks/ready-to-invoice/', views.TasksReadyToInvoiceView.as_view(), name='task-ready-to-invoice'),
    path('tasks/<int:pk>/', views.TaskDetailView.as_view(), name='task-detail'),
    path('tasks/<int:pk>/status/', views.TaskStatusView.as_view(), name='task-status'),

    # Booking requests
    path('booking-requests/', views.BookingRequestListCreateView.as_view(), name='booking-request-list'),
    path('booking-requests/<int:pk>/', views.BookingRequestDetailView.as_view(), name='booking-request-detail'),
    path('booking-requests/<int:pk>/status/', views.BookingRequestStatusView.as_view(), name='booking-request-status'),

    # Activity feed
    path('activity/', views.ActivityLogListView.as_view(), name='activity-list'),
]
