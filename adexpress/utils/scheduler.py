from apscheduler.executors.asyncio import AsyncIOExecutor
from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.interval import IntervalTrigger

from adexpress.utils.const import SchedulerConfig
from adexpress.utils.tasks import refresh_ads, update_statistics


def start_scheduler(service, statistics) -> AsyncIOScheduler:
    """
    Start the scheduler for periodic tasks.

    :param service: The advertisement service to refresh.
    :param statistics: The statistics service to update.
    :return: The scheduler.
    """
    scheduler = AsyncIOScheduler()
    scheduler.add_executor(AsyncIOExecutor())

    scheduler.add_job(refresh_ads, IntervalTrigger(minutes=SchedulerConfig.REFRESH_MINUTES), args=[service])
    scheduler.add_job(
        update_statistics,
        IntervalTrigger(minutes=SchedulerConfig.STATISTICS_MINUTES),
        args=[service, statistics]
    )
    scheduler.start()
    return scheduler
