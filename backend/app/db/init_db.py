from __future__ import annotations

import logging

from sqlalchemy import select
from sqlalchemy.orm import Session

from app.core.config import settings
from app.models.enums import UserRole
from app.models.template import ProjectTemplate, TemplateMilestone
from app.services.users import create_user, get_user_by_email

logger = logging.getLogger(__name__)

DEFAULT_TEMPLATE_NAME = "Standard Low Voltage Installation"
DEFAULT_TEMPLATE_MILESTONES = [
    ("Initial Contact", "Initial contact with client"),
    ("Quote Sent", "Quote has been sent to client"),
    ("Quote Approved", "Client has approved the quote"),
    ("Contract Signed", "Contract has been signed"),
    ("Payment Received", "Initial payment or deposit received"),
    ("Parts Ordered", "All necessary parts have been ordered"),
    ("Parts Received", "All parts have been received and verified"),
    ("Installation Scheduled", "Installation date has been scheduled"),
    ("Installation In Progress", "Installation work is currently in progress"),
    ("Installation Complete", "Installation work has been completed"),
    ("Final Inspection", "Final inspection and quality check"),
    ("Project Complete", "Project is fully complete and closed"),
]


def ensure_initial_admin(db: Session) -> None:
    """
    Promote (or, with INITIAL_ADMIN_PASSWORD set, create) the INITIAL_ADMIN_EMAIL user as admin.
    """
    email = settings.initial_admin_email
    if not email:
        return
    user = get_user_by_email(db, email)
    if user is None:
        if not settings.initial_admin_password:
            logger.info("Initial admin %s not found; sign in once, then restart to promote", email)
            return
        create_user(db, email=email, password=settings.initial_admin_password, name="Administrator", role=UserRole.ADMIN)
        logger.info("Created initial admin %s", email)
        return
    if user.role != UserRole.ADMIN:
        user.role = UserRole.ADMIN.value
        db.commit()
        logger.info("User %s has been set as admin", email)


def ensure_default_template(db: Session) -> None:
    if db.scalar(select(ProjectTemplate).where(ProjectTemplate.is_default.is_(True))):
        return
    template = ProjectTemplate(
        name=DEFAULT_TEMPLATE_NAME,
        description="Default template for low voltage installation projects",
        is_default=True,
        template_milestones=[
            TemplateMilestone(name=name, description=description, order=i)
            for i, (name, description) in enumerate(DEFAULT_TEMPLATE_MILESTONES)
        ],
    )
    db.add(template)
    db.commit()


def ensure_seeded(db: Session) -> None:
    ensure_initial_admin(db)
    ensure_default_template(db)


if __name__ == "__main__":
    from app.db.session import SessionLocal

    db = SessionLocal()
    try:
        ensure_seeded(db)
        print("Seeded initial admin and default template.")
    finally:
        db.close()
