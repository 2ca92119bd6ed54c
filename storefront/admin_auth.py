import os
import logging
from sqlalchemy.orm import Session

from storefront.models import User, UserRole
from storefront.security import hash_password

logger = logging.getLogger(__name__)


# =====================================================
# ADMIN BOOTSTRAP (RUNS ON STARTUP)
# =====================================================

def ensure_admin_exists(db: Session):
    """
    Ensures the admin account named by ADMIN_EMAIL exists and carries the
    admin role. Credentials come only from the environment.
    Idempotent on every startup.
    """

    admin_email = os.getenv("ADMIN_EMAIL")
    admin_password = os.getenv("ADMIN_PASSWORD")

    if not admin_email or not admin_password:
        logger.warning("ADMIN_EMAIL or ADMIN_PASSWORD not set; admin bootstrap skipped")
        return

    admin = db.query(User).filter(User.email == admin_email).first()

    if admin:
        if not admin.is_admin:
            admin.role = UserRole.admin.value
            db.commit()
            logger.warning("Existing user upgraded to admin | user_id=%s", admin.id)
        else:
            logger.info("Admin already exists")
        return

    admin = User(
        name="Admin",
        email=admin_email,
        password=hash_password(admin_password),
        role=UserRole.admin.value,
    )

    db.add(admin)
    db.commit()

    logger.info("Admin user created from environment variables")
