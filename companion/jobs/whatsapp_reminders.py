# companion/jobs/whatsapp_reminders.py
"""Send one WhatsApp reminder per upcoming appointment. Run from cron."""
import asyncio
import sys
from datetime import datetime
from functools import partial

from companion.core.config import settings
from companion.core.logging import get_logger, setup_logging
from companion.repositories.factory import build_repository
from companion.services.notifications import build_twilio_client, send_whatsapp
from companion.services.reminders import send_whatsapp_reminders

logger = get_logger(__name__)


async def run() -> int:
    repository = build_repository(settings)
    client = build_twilio_client()
    if client is None:
        logger.error("whatsapp_job_not_configured")
        return 2

    # one HTTP session for the whole batch
    try:
        report = await send_whatsapp_reminders(
            repository, datetime.now(), sender=partial(send_whatsapp, client=client)
        )
    finally:
        await client.http_client.close()
    return 1 if report.failed else 0


def main() -> int:
    setup_logging(debug=settings.is_development, max_log_length=settings.MAX_LOG_LENGTH, level=settings.LOG_LEVEL)
    logger.info("whatsapp_reminder_job_start", app_env=settings.APP_ENV)
    return asyncio.run(run())


if __name__ == "__main__":
    sys.exit(main())
