from uuid import UUID

from sqlalchemy import or_, select

from app.laptrack.db.models import User


class UserRepository:
    def __init__(self, db):
        self.db = db

    def get_by_id(self, user_id):
        try:
            key = user_id if isinstance(user_id, UUID) else UUID(str(user_id))
        except ValueError:
            return None
        return self.db.get(User, key)

    def list_by_username_or_email(self, identifier: str) -> list[User]:
        stmt = select(User).where(or_(User.username == identifier, User.email == identifier))
        return self.db.execute(stmt).scalars().all()
