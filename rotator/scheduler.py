"""
APScheduler configuration and job scheduling for backup-rotator.

Manages:
- The scheduled rotation job (crontab expression from the config)
- Manual "run now" triggers
- The outcome of the most recent run
"""

import logging
from datetime import datetime, timedelta, timezone
from apscheduler.schedulers.background import BackgroundScheduler
from apscheduler.triggers.cron import CronTrigger
from apscheduler.triggers.date import DateTrigger
from apscheduler.jobstores.memory import MemoryJobStore
from apscheduler.executors.pool import ThreadPoolExecutor

from rotator.controller import RunController


logger = logging.getLogger(__name__)

ROTATION_JOB_ID = 'rotation'

# Global scheduler instance and Flask app reference
scheduler = None
flask_app = None
last_outcome = None


def init_scheduler(app):
    """
    Initialize and configure APScheduler.

    Args:
        app: Flask app instance carrying the rotation config
    """
    global scheduler, flask_app

    if scheduler is not None:
        return scheduler

    flask_app = app
    rotator_config = app.extensions['rotator_config']

    jobstores = {
        'default': MemoryJobStore()
    }

    # One worker: rotations never overlap inside this process
    executors = {
        'default': ThreadPoolExecutor(max_workers=1)
    }

    job_defaults = {
        'coalesce': True,  # Combine multiple pending instances into one
        'max_instances': 1,  # Only one instance of a job at a time
        'misfire_grace_time': 300  # 5 minutes grace period for misfires
    }

    scheduler = BackgroundScheduler(
        jobstores=jobstores,
        executors=executors,
        job_defaults=job_defaults,
        timezone=app.config.get('SCHEDULER_TIMEZONE', 'UTC')
    )

    scheduler.add_job(
        func=_execute_rotation_wrapper,
        trigger=CronTrigger.from_crontab(rotator_config.schedule, timezone='UTC'),
        id=ROTATION_JOB_ID,
        name=f"Rotation: {rotator_config.hostname}",
        replace_existing=True
    )

    return scheduler


def start_scheduler():
    """
    Start the APScheduler.

    Should be called after the Flask app is initialized.
    """
    if scheduler is None:
        raise RuntimeError("Scheduler not initialized. Call init_scheduler() first.")

    if not scheduler.running:
        scheduler.start()
        logger.info(f"APScheduler started (state={scheduler.state})")

        for job in scheduler.get_jobs():
            next_run = job.next_run_time.isoformat() if job.next_run_time else 'N/A'
            logger.info(f"  - {job.id}: {job.name} (next run: {next_run})")
    else:
        logger.info(f"Scheduler already running (state={scheduler.state})")


def stop_scheduler():
    """Stop the APScheduler."""
    if scheduler and scheduler.running:
        scheduler.shutdown()
        logger.info("APScheduler stopped")


def _execute_rotation_wrapper():
    """
    Run one rotation from a scheduler thread and keep its outcome.
    """
    global last_outcome

    rotator_config = flask_app.extensions['rotator_config']

    logger.info("Scheduler executing rotation")
    try:
        outcome = RunController(rotator_config).run()
    except Exception as e:
        logger.exception(f"Scheduled rotation crashed: {e}")
        return

    last_outcome = outcome
    logger.info(f"Rotation finished in state {outcome.state.value} (exit code {outcome.exit_code})")


def trigger_rotation_now() -> str:
    """
    Queue a rotation to run immediately.

    Returns:
        ID of the one-time scheduler job
    """
    if scheduler is None:
        raise RuntimeError("Scheduler not initialized")

    # 1 second delay to avoid racing the scheduler's wakeup
    now = datetime.now(timezone.utc)
    job_id = f"manual_{int(now.timestamp())}"
    scheduler.add_job(
        func=_execute_rotation_wrapper,
        trigger=DateTrigger(run_date=now + timedelta(seconds=1)),
        id=job_id,
        name="Manual rotation",
        replace_existing=True
    )

    logger.info(f"Manually triggered rotation: {job_id}")
    return job_id


def get_scheduled_jobs() -> list:
    """
    Get list of all scheduled jobs.

    Returns:
        List of dicts with job information
    """
    if scheduler is None:
        return []

    jobs = []

    for job in scheduler.get_jobs():
        jobs.append({
            'id': job.id,
            'name': job.name,
            'next_run': job.next_run_time.isoformat() if job.next_run_time else None,
            'trigger': str(job.trigger)
        })

    return jobs


def is_scheduler_running() -> bool:
    """Check if scheduler is running."""
    return scheduler is not None and scheduler.running


def get_last_outcome():
    """Return the RunOutcome of the most recent scheduled run, or None."""
    return last_outcome
