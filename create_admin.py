# create_admin.py
import argparse
import logging

from sqlmodel import Session, select

from app.constants.statuses import UserRole
from app.database import engine
from app.logging_config import configure_logging
from app.models.user import User
from app.utils.hash import hash_password

logger = logging.getLogger("create_admin")


def create_admin(session: Session, email: str, password: str, name: str) -> User:
    """Create the admin account, or promote an existing user with that email."""
    user = session.exec(select(User).where(User.email == email)).first()

    if user:
        if user.role == UserRole.admin.value:
            logger.info("Admin user already exists: %s", email)
            return user
        user.role = UserRole.admin.value
        logger.info("Promoted existing user %s to admin", email)
    else:
        user = User(
            email=email,
            password=hash_password(password),
            name=name,
            role=UserRole.admin.value,
            is_active=True,
        )
        logger.info("Admin user created: %s", email)

    session.add(user)
    session.commit()
    session.refresh(user)
    return user


def main():
    parser = argparse.ArgumentParser(description="Create the Visa Desk admin account")
    parser.add_argument("--email", default="admin@viskatera.com")
    parser.add_argument("--password", required=True)
    parser.add_argument("--name", default="System Administrator")
    args = parser.parse_args()

    configure_logging()
    with Session(engine) as session:
        create_admin(session, args.email, args.password, args.name)


if __name__ == "__main__":
    main()
