"""Scheduled task triggers (called by cron or a Logic Apps recurrence)."""
import logging

from fastapi import APIRouter
from fastapi.responses import JSONResponse
from sqlalchemy import text

from app.api.dependencies import DbSession, DispatcherCaller
from app.core.clock import utcnow
from app.schemas.notification import ReminderScanResponse
from app.services.logic_apps_service import LogicAppsClient
from app.services.reminder_service import ReminderService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/scheduled-tasks", tags=["Scheduled Tasks"])


@router.post("/session-reminders/1h", response_model=ReminderScanResponse)
def run_hourly_reminders(db: DbSession, caller: DispatcherCaller):
    """Create reminders for sessions starting within the next hour."""
    logger.info("1-hour session reminders triggered by %s", caller)
    created = ReminderService(db).scan_hourly()
    return ReminderScanResponse(
        message=f"Created {created} session reminders",
        created=created,
    )


@router.post("/session-reminders/24h", response_model=ReminderScanResponse)
def run_daily_reminders(db: DbSession, caller: DispatcherCaller):
    """Queue day-before reminders for sessions starting 24 to 25 hours from now."""
    logger.info("24-hour session reminders triggered by %s", caller)
    result = ReminderService(db).schedule_daily_batch()
    return ReminderScanResponse(
        message=f"Scheduled {result['created']} reminders for {result['sessions']} sessions",
        sessions=result["sessions"],
        created=result["created"],
    )


@router.get("/health")
def scheduled_tasks_health(db: DbSession):
    """Database reachability and Logic Apps configuration."""
    result = {
        "database": False,
        "logic_apps": LogicAppsClient().health_check(),
        "timestamp": utcnow().isoformat(),
    }
    try:
        db.execute(text("SELECT 1"))
        result["database"] = True
    except Exception:
        logger.exception("Scheduled tasks health check could not reach the database")
        return JSONResponse(content=result, status_code=503)
    return result
