# companion/repositories/factory.py

from companion.core.config import Settings
from companion.core.logging import get_logger
from companion.repositories.base import PracticeRepository

logger = get_logger(__name__)


def build_repository(settings: Settings) -> PracticeRepository:
    """SQL when a database is configured, else the seeded in-memory demo."""
    if settings.database_configured:
        from companion.db.session import get_session_factory
        from companion.repositories.sql import SqlRepository

        logger.info("repository_selected", backend="sql")
        return SqlRepository(get_session_factory())

    from companion.repositories.memory import InMemoryRepository, seed_demo_accounts, seed_demo_data
    from companion.services.identity import hash_password

    repo = InMemoryRepository()
    seed_demo_data(repo)
    seed_demo_accounts(repo, hash_password(settings.DEMO_ACCOUNT_PASSWORD))
    logger.info("repository_selected", backend="memory")
    return repo
