#!/usr/bin/env python3
"""
CRAPP Reminder Service - Entry Point
Daily symptom-report reminders and expired token cleanup

Usage:
    python reminderd.py

Environment Variables:
    DATABASE_URL: PostgreSQL connection string
    REMINDER_TIMES: Comma-separated HH:MM wall-clock times (default 20:00)
    TOKEN_CLEANUP_INTERVAL_HOURS: Token sweep interval (default 12)
    See config/settings.py for full configuration
"""

import asyncio
import atexit
import logging
import os
import signal
import sys
from pathlib import Path

from dotenv import load_dotenv


# =============================================================================
# PID Lock File - Prevent duplicate service instances
# =============================================================================
_SERVICE_DIR = Path(__file__).parent if '__file__' in dir() else Path.cwd()


def _get_lock_file_path() -> Path:
    """Get the lock file path in the service directory."""
    return _SERVICE_DIR / ".reminderd.pid"


def acquire_lock() -> bool:
    """
    Acquire exclusive lock by creating a PID file.
    Returns True if lock acquired, False if another instance is running.
    """
    lock_file = _get_lock_file_path()

    if lock_file.exists():
        try:
            old_pid = int(lock_file.read_text().strip())
            os.kill(old_pid, 0)  # Signal 0 = check if process exists
            return False
        except (ValueError, ProcessLookupError, PermissionError):
            # Stale lock file
            pass

    lock_file.write_text(str(os.getpid()))
    return True


def release_lock() -> None:
    """Release the lock by removing the PID file."""
    lock_file = _get_lock_file_path()
    try:
        if lock_file.exists() and lock_file.read_text().strip() == str(os.getpid()):
            lock_file.unlink()
    except OSError as e:
        logging.getLogger(__name__).warning(f"Could not remove lock file: {e}")


# Load environment variables
load_dotenv()

logger = logging.getLogger(__name__)


def build_log_handlers(log_file=None) -> list:
    """Stdout handler, plus a file handler when log_file is set."""
    return [
        logging.StreamHandler(sys.stdout),
        *(
            [logging.FileHandler(log_file)]
            if log_file
            else []
        ),
    ]


def configure_logging(log_level: str = "INFO", log_file=None) -> None:
    """Configure root logging from the LOG_LEVEL and LOG_FILE settings."""
    logging.basicConfig(
        level=getattr(logging, log_level.upper(), logging.INFO),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        handlers=build_log_handlers(log_file),
    )
    # APScheduler logs every job execution at INFO
    logging.getLogger("apscheduler").setLevel(logging.WARNING)


def build_dispatcher(settings):
    """Create the dispatcher with every channel the settings enable."""
    from services import EmailSender, NotificationDispatcher, PushSender

    senders = []
    if settings.push_enabled:
        senders.append(PushSender(
            settings.vapid_private_key,
            vapid_subject=settings.vapid_subject,
            ttl=settings.push_ttl,
        ))
        logger.info("Web push channel enabled")
    else:
        logger.info("Web push channel disabled (VAPID keys not configured)")

    if settings.email_enabled:
        senders.append(EmailSender(
            settings.smtp_host,
            settings.smtp_port,
            settings.from_email,
            from_name=settings.from_name,
            username=settings.smtp_username,
            password=settings.smtp_password,
            app_url=settings.app_url,
            timeout=settings.dispatch_timeout_seconds,
        ))
        logger.info("Email channel enabled")
    else:
        logger.info("Email channel disabled")

    return NotificationDispatcher(
        senders,
        timeout=settings.dispatch_timeout_seconds,
        concurrency=settings.dispatch_concurrency,
    )


async def main() -> None:
    """Main entry point for the reminder service."""
    logger.info("=" * 60)
    logger.info("CRAPP Reminder Service Starting...")
    logger.info("=" * 60)

    from config import get_settings
    try:
        settings = get_settings()
    except ValueError as e:
        logger.error(f"Invalid configuration: {e}")
        sys.exit(1)

    logger.info(f"App Name: {settings.app_name}")
    logger.info(f"Timezone: {settings.timezone}")
    logger.info(f"Reminder Times: {', '.join(settings.reminder_times) or '(none)'}")
    logger.info(f"Log Level: {settings.log_level}")

    from database import Database
    db = Database()
    logger.info("Connecting to database...")
    await db.connect(
        settings.database_url,
        min_size=settings.db_pool_min,
        max_size=settings.db_pool_max,
        timezone=settings.timezone,
    )
    logger.info("Database connected")

    from services import RecipientService, cleanup_expired_tokens
    from scheduler import SchedulerSupervisor
    from monitoring import HealthCheckServer

    recipients = RecipientService(db, timezone=settings.timezone)
    dispatcher = build_dispatcher(settings)

    supervisor = SchedulerSupervisor(
        settings,
        recipients.select_eligible,
        dispatcher,
        lambda: cleanup_expired_tokens(db),
    )
    health_server = HealthCheckServer(db, supervisor, port=settings.health_port)

    stop_event = asyncio.Event()
    loop = asyncio.get_running_loop()
    for sig in (signal.SIGINT, signal.SIGTERM):
        loop.add_signal_handler(sig, stop_event.set)

    try:
        start_error = supervisor.start()
        if start_error:
            logger.warning(f"Some reminder times were not scheduled: {start_error}")

        try:
            await health_server.start()
        except OSError as e:
            logger.error(f"Failed to start health check server: {e}")

        logger.info("Reminder service is running. Press Ctrl+C to stop.")
        await stop_event.wait()

    except asyncio.CancelledError:
        logger.info("Reminder service stopping...")
    finally:
        logger.info("Shutting down...")
        await health_server.stop()
        supervisor.stop()
        await db.close()
        logger.info("Cleanup complete")


if __name__ == "__main__":
    if not acquire_lock():
        print("ERROR: Another reminder service instance is already running!", file=sys.stderr)
        print("       Check 'ps aux | grep reminderd.py' or remove .reminderd.pid if stale", file=sys.stderr)
        sys.exit(1)

    atexit.register(release_lock)

    from config import Settings
    startup_settings = Settings()
    configure_logging(startup_settings.log_level, startup_settings.log_file)

    try:
        asyncio.run(main())
    except KeyboardInterrupt:
        logger.info("Reminder service stopped by user")
    except Exception as e:
        logger.exception(f"Reminder service crashed: {e}")
        sys.exit(1)
    finally:
        release_lock()
