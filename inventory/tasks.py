"""
Celery tasks for inventory.

Tasks:
    - generate_low_stock_report: Morning list of items at or below minimum
"""
import logging

from celery import shared_task

logger = logging.getLogger(__name__)


@shared_task
def generate_low_stock_report():
    """
    Log every item at or below its minimum together with the open alerts.

    Can be scheduled via Celery Beat for daily execution.
    """
    from django.db.models import F
    from inventory.models import InventoryItem, InventoryAlert

    items = InventoryItem.objects.filter(
        quantity__lte=F('minimum_quantity')
    ).order_by('quantity', 'item_name')

    lines = [
        f"  - {item.item_name}: {item.quantity} {item.unit} (minimum {item.minimum_quantity})"
        for item in items
    ]
    open_alerts = InventoryAlert.objects.filter(is_resolved=False).count()

    report = f"""
    ===============================================
    LOW STOCK REPORT
    ===============================================
    Items at or below minimum: {len(lines)}
    Open alerts: {open_alerts}
    {chr(10).join(lines)}
    ===============================================
    """

    logger.info(report)

    return {
        'low_stock_items': len(lines),
        'open_alerts': open_alerts,
        'items': [item.id for item in items],
    }
