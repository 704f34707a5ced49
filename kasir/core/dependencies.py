from dataclasses import dataclass
from typing import Optional

from fastapi import Header
from kasir.core.database import SessionLocal


def get_db():
    """Dependency to get database session."""
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


@dataclass(frozen=True)
class Actor:
    """The user on whose behalf a mutation runs. Recorded on ledger and movement rows."""
    user_id: Optional[str] = None
    user_name: Optional[str] = None
    role: Optional[str] = None

    @property
    def display_name(self) -> str:
        return self.user_name or "System"


SYSTEM_ACTOR = Actor(user_id=None, user_name="System", role="system")


def get_current_actor(
    x_user_id: Optional[str] = Header(None),
    x_user_name: Optional[str] = Header(None),
    x_user_role: Optional[str] = Header(None),
) -> Actor:
    """
    Build the acting user from request headers. Authentication happens upstream;
    requests without headers act as the system user.
    """
    if not x_user_id and not x_user_name:
        return SYSTEM_ACTOR
    return Actor(user_id=x_user_id, user_name=x_user_name, role=x_user_role)
