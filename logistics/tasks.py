"""
LOGISTICS App - Celery Tasks

Periodic reporting on the closing backlog.
"""

from celery import shared_task
import logging

from django.db import DatabaseError

logger = logging.getLogger(__name__)


@shared_task(name='logistics.tasks.log_daily_closing_summary')
def log_daily_closing_summary():
    """
    Log the orders waiting to be closed.

    Runs every evening (see CELERY_BEAT_SCHEDULE). Nothing is closed
    automatically: closing stays an admin decision.
    """
    from logistics.services.closure import build_closing_summary, get_closure_candidates
    from logistics.services.lifecycle import log_data_quality_issues

    try:
        candidates = list(get_closure_candidates())
    except DatabaseError as e:
        logger.error(f"[CLOSURE TASK] Could not load closing backlog: {e}")
        return {}

    summary = build_closing_summary(candidates)
    warnings = sum(len(log_data_quality_issues(order)) for order in candidates)

    logger.info(
        f"[CLOSURE TASK] Backlog: {summary.orders} orders | "
        f"collected S/ {summary.total_charged} | commission S/ {summary.commission} | "
        f"payout S/ {summary.provider_payout} | data quality warnings: {warnings}"
    )
    return {
        'orders': summary.orders,
        'total_charged': summary.total_charged,
        'commission': summary.commission,
        'provider_payout': summary.provider_payout,
        'warnings': warnings,
    }
