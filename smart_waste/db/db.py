from typing import Optional

from sqlalchemy import select
from sqlalchemy.orm import Session

from .models import Base, User, UserType
from .session import SessionLocal, engine

from smart_waste.config.settings import settings
from smart_waste.utils.auth import AuthUtils
from smart_waste.utils.logging import get_logger

logger = get_logger()


def create_tables():
    Base.metadata.create_all(engine)
    logger.info("Created all tables.")


def drop_tables():
    Base.metadata.drop_all(engine)
    logger.info("Dropped all tables.")


def seed_admin(db: Optional[Session] = None) -> Optional[User]:
    """
    Create the bootstrap admin from ADMIN_EMAIL / ADMIN_PASSWORD.

    Admins cannot register through the API, so this is the only way the first
    one comes into existence. Does nothing when the settings are empty or the
    email is already taken.
    """
    if not settings.ADMIN_EMAIL or not settings.ADMIN_PASSWORD:
        return None

    session = db or SessionLocal()
    try:
        email = settings.ADMIN_EMAIL.strip().lower()
        existing = session.execute(
            select(User).where(User.email == email)
        ).scalar_one_or_none()
        if existing:
            return existing

        admin = User(
            name=settings.ADMIN_NAME,
            email=email,
            password_hash=AuthUtils.hash_password(settings.ADMIN_PASSWORD),
            user_type=UserType.ADMIN,
            is_verified=True,
        )
        session.add(admin)
        session.commit()
        logger.info(f"Seeded admin account {email}")
        return admin
    except Exception:
        session.rollback()
        raise
    finally:
        if db is None:
            session.close()


def reset_db():
    logger.info("Resetting database...")
    drop_tables()
    create_tables()
    seed_admin()
    logger.info("Database reset complete.")


if __name__ == "__main__":
    reset_db()
