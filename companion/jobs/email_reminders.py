# companion/jobs/email_reminders.py
"""Send one email reminder per upcoming appointment. Run from cron."""
import asyncio
import sys
from datetime import datetime

from companion.core.config import settings
from companion.core.logging import get_logger, setup_logging
from companion.repositories.factory import build_repository
from companion.services.reminders import send_email_reminders

logger = get_logger(__name__)


async def run() -> int:
    repository = build_repository(settings)
    report = await send_email_reminders(repository, datetime.now())
    return 1 if report.failed else 0


def main() -> int:
    setup_logging(debug=settings.is_development, max_log_length=settings.MAX_LOG_LENGTH, level=settings.LOG_LEVEL)
    logger.info("email_reminder_job_start", app_env=settings.APP_ENV)
    return asyncio.run(run())


if __name__ == "__main__":
    sys.exit(main())
