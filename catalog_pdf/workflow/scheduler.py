"""Периодическая пересборка каталога внутри FastAPI-приложения."""

from __future__ import annotations

from apscheduler.events import EVENT_JOB_ERROR, EVENT_JOB_EXECUTED, JobExecutionEvent
from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.cron import CronTrigger
from apscheduler.triggers.date import DateTrigger

from catalog_pdf.config.models import ScheduleConfig
from catalog_pdf.logger import get_logger
from catalog_pdf.workflow.coordinator import GenerationCoordinator

logger = get_logger(__name__)

SCHEDULED_JOB_ID = "catalog_regeneration"
STARTUP_JOB_ID = "catalog_startup"


def scheduled_generation(coordinator: GenerationCoordinator) -> None:
    logger.info("Плановая пересборка каталога")
    outcome = coordinator.generate()
    logger.info("Плановая пересборка завершена: %s", outcome.status)


def job_listener(event: JobExecutionEvent) -> None:
    if event.exception:
        logger.error("Задача %s упала: %s", event.job_id, event.exception)
    else:
        logger.debug("Задача %s выполнена", event.job_id)


def create_scheduler(
    coordinator: GenerationCoordinator,
    schedule: ScheduleConfig,
) -> AsyncIOScheduler:
    """Создаёт планировщик; синхронные задачи уходят в пул потоков event loop."""
    scheduler = AsyncIOScheduler(timezone="UTC")
    scheduler.add_listener(job_listener, EVENT_JOB_EXECUTED | EVENT_JOB_ERROR)
    if not schedule.enabled:
        logger.info("Плановая пересборка отключена (SCHEDULE_ENABLED=false)")
        return scheduler

    scheduler.add_job(
        scheduled_generation,
        CronTrigger.from_crontab(schedule.cron, timezone="UTC"),
        args=[coordinator],
        id=SCHEDULED_JOB_ID,
        name="Regenerate catalog PDF",
        replace_existing=True,
        max_instances=1,
        coalesce=True,
        misfire_grace_time=3600,
    )
    logger.info("Плановая пересборка по расписанию: %s", schedule.cron)
    if schedule.run_on_startup:
        scheduler.add_job(
            scheduled_generation,
            DateTrigger(),
            args=[coordinator],
            id=STARTUP_JOB_ID,
            name="Initial catalog PDF",
            replace_existing=True,
        )
    return scheduler
