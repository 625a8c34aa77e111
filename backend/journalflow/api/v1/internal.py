from fastapi import APIRouter, Depends

from journalflow.core.scheduler import ReviewReminderSweep
from journalflow.core.security import require_cron_secret

router = APIRouter(prefix="/internal", tags=["Internal"])


def get_reminder_sweep() -> ReviewReminderSweep:
    return ReviewReminderSweep()


@router.post("/cron/review-reminders")
async def review_reminders(
    _cron: None = Depends(require_cron_secret),
    sweep: ReviewReminderSweep = Depends(get_reminder_sweep),
):
    """
    触发催审提醒（内部接口，由外部调度器调用）
    """
    return {"success": True, "reminders_sent": sweep.run()}
