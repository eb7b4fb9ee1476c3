"""Admin identity resolver — maps an admin's email to a stable user id."""

import secrets
from uuid import UUID, uuid4

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from ecoledger.exceptions import ActorResolutionFailedError
from ecoledger.logging_config import get_logger
from ecoledger.models import User

logger = get_logger(__name__)


def normalize_email(email: str) -> str:
    return email.strip().lower()


def unusable_password_hash() -> str:
    """A credential no bcrypt verification can ever match."""
    return "!" + secrets.token_urlsafe(24)


async def _find_user_id(db: AsyncSession, email: str) -> UUID | None:
    result = await db.execute(select(User.id).where(User.email == email))
    return result.scalar_one_or_none()


async def resolve_actor(
    db: AsyncSession,
    email: str,
    display_name: str | None = None,
) -> UUID:
    """
    Return the user id for an admin email, creating the user if needed.

    Two concurrent first-time resolutions for the same email both end with
    the same id: the loser of the unique-email race re-reads the winner's
    row. The insert runs in a SAVEPOINT so the caller's transaction
    survives the conflict. The caller commits.
    """
    email = normalize_email(email)
    user_id = await _find_user_id(db, email)
    if user_id is not None:
        return user_id

    user = User(
        id=uuid4(),
        email=email,
        display_name=display_name or email.split("@")[0],
        password_hash=unusable_password_hash(),
        balance=0,
    )
    try:
        async with db.begin_nested():
            db.add(user)
            await db.flush()
    except IntegrityError:
        logger.info("actor_create_conflict", email=email)
        user_id = await _find_user_id(db, email)
        if user_id is None:
            raise ActorResolutionFailedError(email) from None
        return user_id

    logger.info("actor_created", user_id=str(user.id), email=email)
    return user.id
