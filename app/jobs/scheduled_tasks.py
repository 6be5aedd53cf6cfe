import threading
import time

import schedule

from infrastructure.logging import get_module_logger

logger = get_module_logger()


def safe_run(job):
    def wrapper(*args, **kwargs):
        try:
            job(*args, **kwargs)
        except Exception as e:  # pylint: disable=broad-except
            logger.error("scheduled_job_failed", job=job.__name__, error=str(e))

    return wrapper


def init(service, scheduler=None):
    """Register the periodic jobs of the notification service."""
    scheduler = scheduler or schedule.default_scheduler
    settings = service.settings

    scheduler.every(settings.health.check_interval_seconds).seconds.do(
        safe_run(channel_healthchecks), service=service
    )
    scheduler.every(settings.dispatch.queue_interval_seconds).seconds.do(
        safe_run(drain_dispatch_queue), service=service
    )
    scheduler.every(5).minutes.do(safe_run(scheduler_heartbeat))
    logger.info(
        "scheduled_tasks_initialized",
        health_interval_seconds=settings.health.check_interval_seconds,
        queue_interval_seconds=settings.dispatch.queue_interval_seconds,
    )


def scheduler_heartbeat():
    logger.info("scheduler_heartbeat", at=time.ctime())


def channel_healthchecks(service):
    report = service.health.probe_all()
    for kind, health in report["channels"].items():
        if health["state"] != "closed" or health["last_probe_ok"] is False:
            logger.error("channel_unhealthy", channel_kind=kind, state=health["state"])
        else:
            logger.debug("channel_healthy", channel_kind=kind)


def drain_dispatch_queue(service):
    queue = service.dispatcher.queue
    if queue.size():
        queue.drain_cycle()


def run_continuously(interval=1, scheduler=None):
    """Continuously run, while executing pending jobs at each
    elapsed time interval.
    @return cease_continuous_run: threading. Event which can
    be set to cease continuous run. Please note that it is
    *intended behavior that run_continuously() does not run
    missed jobs*. For example, if you've registered a job that
    should run every minute and you set a continuous run
    interval of one hour then your job won't be run 60 times
    at each interval but only once.
    """
    scheduler = scheduler or schedule.default_scheduler
    cease_continuous_run = threading.Event()

    class ScheduleThread(threading.Thread):
        def run(self):
            while not cease_continuous_run.is_set():
                scheduler.run_pending()
                cease_continuous_run.wait(interval)

    continuous_thread = ScheduleThread(name="scheduler", daemon=True)
    continuous_thread.start()
    return cease_continuous_run
