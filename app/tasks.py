"""
Celery Tasks
Background work queued by the API: Excel export, order SMS, OTP cleanup.
"""

import asyncio
import logging
import time
from datetime import datetime
from decimal import Decimal

from app.celery_worker import celery_app
from app.database import async_session_maker, engine
from app.services.excel_manager import ExcelManager
from app.services.notifications import get_notification_service
from app.services.otp import purge_expired_otps as purge_otps

logger = logging.getLogger(__name__)


@celery_app.task(
    bind=True,
    max_retries=3,
    default_retry_delay=5,
    autoretry_for=(Exception,),
    retry_backoff=True
)
def export_order_to_excel(self, order_data: dict) -> dict:
    """
    Append a placed order to the Excel export.

    Args:
        order_data: Flattened order (see orders.order_export_payload)

    Returns:
        dict: Result of the export operation
    """
    task_id = self.request.id
    order_id = order_data.get('order_id', 'unknown')

    logger.info(f"Task {task_id}: Exporting order #{order_id}")
    start_time = time.time()

    result = ExcelManager.export_order(order_data)

    elapsed = round(time.time() - start_time, 3)
    result['task_id'] = task_id
    result['processing_time_seconds'] = elapsed

    if result['success']:
        logger.info(f"Task {task_id}: Order #{order_id} exported in {elapsed}s")
    else:
        logger.warning(f"Task {task_id}: Order #{order_id} failed - {result['message']}")

    return result


@celery_app.task(
    bind=True,
    max_retries=3,
    default_retry_delay=10,
    autoretry_for=(ConnectionError,),
    retry_backoff=True
)
def send_order_confirmation(self, order_data: dict) -> dict:
    """Text (and email, if known) the customer that their order is in."""
    notifier = get_notification_service()
    result = asyncio.run(notifier.send_order_confirmation(
        order_id=order_data['order_id'],
        customer_phone=order_data['customer_phone'],
        total=Decimal(order_data['total']),
        order_mode=order_data['order_mode'],
        kitchen_name=order_data.get('kitchen_name') or '',
        customer_name=order_data.get('customer_name'),
        customer_email=order_data.get('customer_email'),
        delivery_address=order_data.get('delivery_address'),
        delivery_window=order_data.get('delivery_window'),
    ))

    if not result.success:
        logger.warning(f"Confirmation for order #{order_data['order_id']} failed: {result.error_message}")

    return {
        'success': result.success,
        'order_id': order_data['order_id'],
        'message_id': result.message_id,
        'provider': result.provider,
    }


async def _purge_expired_otps() -> int:
    try:
        async with async_session_maker() as session:
            return await purge_otps(session)
    finally:
        # Each asyncio.run gets a fresh loop; pooled connections can't cross it
        await engine.dispose()


@celery_app.task
def purge_expired_otps() -> dict:
    """Periodic cleanup of expired OTP rows."""
    removed = asyncio.run(_purge_expired_otps())
    logger.info(f"Purged {removed} expired OTP(s)")
    return {
        'removed': removed,
        'timestamp': datetime.now().isoformat()
    }


@celery_app.task
def health_check() -> dict:
    """Simple health check task to verify Celery is working."""
    return {
        'status': 'healthy',
        'worker': 'celery',
        'timestamp': datetime.now().isoformat()
    }
