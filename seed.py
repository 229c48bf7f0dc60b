from loguru import logger
from sqlmodel import Session, select

from app.core.config import settings
from app.db.core import engine, create_db_and_tables
from app.db.schema import User, UserRole
from app.services.password import get_password_hash


def seed_admin(session: Session) -> None:
    """Creates the bootstrap administrator if it does not exist yet."""
    logger.info("--- Seeding Administrator ---")

    if not settings.admin_email or not settings.admin_password:
        logger.warning(
            "ADMIN_EMAIL / ADMIN_PASSWORD not set, skipping administrator seed.")
        return

    email = settings.admin_email.lower()
    admin = session.exec(select(User).where(User.email == email)).first()
    if admin:
        logger.info(f"Existing administrator: {email}")
        return

    session.add(User(
        email=email,
        hashed_password=get_password_hash(settings.admin_password),
        name=settings.admin_name,
        role=UserRole.ADMIN,
        is_active=True,
    ))
    logger.info(f"Created administrator: {email}")


def main():
    # Ensure tables exist (no-op when Alembic already created them)
    create_db_and_tables()

    with Session(engine) as session:
        try:
            seed_admin(session)
            session.commit()
            logger.info("Database seeding completed successfully.")

        except Exception as e:
            session.rollback()
            logger.error(f"Seeding failed: {e}")
            raise e


if __name__ == "__main__":
    main()
