import asyncio
import logging

from sqlalchemy import select

from crm.core.security import get_password_hash
from crm.core.settings import settings
from crm.db.session import AsyncSessionLocal
from crm.models import User

logger = logging.getLogger(__name__)


async def seed_admin() -> None:
    """Create the configured superadmin once; no-op without seed credentials."""
    if not settings.seed_admin_email or not settings.seed_admin_password:
        logger.info("Seed admin credentials not configured; skipping")
        return

    email = settings.seed_admin_email.lower()
    async with AsyncSessionLocal() as session:
        existing = (await session.execute(select(User).where(User.email == email))).scalar_one_or_none()
        if existing is not None:
            logger.info("Seed admin %s already exists", email)
            return
        session.add(
            User(
                name=settings.seed_admin_name,
                email=email,
                hashed_password=get_password_hash(settings.seed_admin_password),
                role="superadmin",
                is_active=True,
            )
        )
        await session.commit()
        logger.info("Seed admin %s created", email)


async def init_db() -> None:
    """Seed reference data; the schema itself is managed by `alembic upgrade head`."""
    await seed_admin()


if __name__ == "__main__":
    asyncio.run(init_db())
