"""
Celery application for background jobs.

Scheduled jobs:
    - mark_overdue_invoices: hourly sweep of sent invoices past their due date
    - generate_daily_invoice_report: invoicing totals for the previous day
    - generate_low_stock_report: morning summary of items at/below minimum
"""
import os

from celery import Celery
from celery.schedules import crontab

os.environ.setdefault('DJANGO_SETTINGS_MODULE', 'config.settings')

app = Celery('cleaning_ops')
app.config_from_object('django.conf:settings', namespace='CELERY')
app.autodiscover_tasks()

app.conf.beat_schedule = {
    'mark-overdue-invoices': {
        'task': 'invoicing.tasks.mark_overdue_invoices',
        'schedule': crontab(minute=0),
    },
    'daily-invoice-report': {
        'task': 'invoicing.tasks.generate_daily_invoice_report',
        'schedule': crontab(hour=6, minute=0),
    },
    'low-stock-report': {
        'task': 'inventory.tasks.generate_low_stock_report',
        'schedule': crontab(hour=7, minute=0),
    },
}
