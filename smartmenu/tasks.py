"""
Celery Tasks
Background tasks that keep the spreadsheet copy of the order board current.
"""

import logging
import time
from datetime import datetime

from smartmenu.celery_worker import celery_app
from smartmenu.services.excel_manager import ExcelManager

logger = logging.getLogger(__name__)


@celery_app.task(
    bind=True,
    max_retries=3,
    default_retry_delay=5,
    autoretry_for=(TimeoutError,),
    retry_backoff=True
)
def export_order_to_excel(self, order_data: dict) -> dict:
    """
    Write one order row to the Excel export.

    Args:
        order_data: flat order dict (see ``orders.order_to_export``)

    Returns:
        dict: Result of the export operation
    """
    task_id = self.request.id
    order_id = order_data.get('order_id', 'unknown')

    logger.info(f"Task {task_id}: exporting order #{order_id}")
    start_time = time.time()

    result = ExcelManager.export_order(order_data)

    elapsed = round(time.time() - start_time, 3)
    result['task_id'] = task_id
    result['processing_time_seconds'] = elapsed

    if result['success']:
        logger.info(f"Task {task_id}: order #{order_id} done in {elapsed}s")
    elif result['message'].startswith("Lock timeout"):
        raise TimeoutError(result['message'])
    else:
        logger.warning(f"Task {task_id}: order #{order_id} failed - {result['message']}")

    return result


@celery_app.task
def health_check() -> dict:
    """Verify the worker is consuming."""
    return {
        'status': 'healthy',
        'worker': 'celery',
        'timestamp': datetime.now().isoformat()
    }


@celery_app.task
def clear_excel_file() -> dict:
    """Remove the export (test resets)."""
    success = ExcelManager.clear_all()
    return {
        'success': success,
        'message': 'Excel file cleared' if success else 'Failed to clear Excel file',
        'timestamp': datetime.now().isoformat()
    }
