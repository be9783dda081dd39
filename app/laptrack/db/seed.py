from sqlalchemy import select

from app.laptrack.core.config import settings
from app.laptrack.core.security import get_password_hash
from app.laptrack.db.models import User
from app.laptrack.services.statuses import UserRole


def _get_or_create_logistics_user(db):
    user = (
        db.execute(select(User).where(User.username == settings.BOOTSTRAP_LOGISTICS_USERNAME))
        .scalars()
        .first()
    )
    if user:
        return user
    user = User(
        username=settings.BOOTSTRAP_LOGISTICS_USERNAME,
        email=settings.BOOTSTRAP_LOGISTICS_EMAIL,
        hashed_password=get_password_hash(settings.BOOTSTRAP_LOGISTICS_PASSWORD),
        role=UserRole.LOGISTICS.value,
        is_active=True,
    )
    db.add(user)
    return user


def run_seed(db):
    """Create the first logistics account so the API can be used at all."""
    _get_or_create_logistics_user(db)
    db.commit()
