"""Admin blacklist of users.

Blacklisting only records an entry; the user row and everything attached to
it stay in place.
"""

import logging

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from warden.core.errors import IntegrityConflict, NotFoundError, TransactionFailure
from warden.models import BlacklistedUser, User
from warden.schemas.users import BlacklistResult

logger = logging.getLogger(__name__)

ACTIVE = "active"
ALREADY_BLACKLISTED = "User is already blacklisted"


class BlacklistService:
    def __init__(self, db: AsyncSession) -> None:
        self.db = db

    async def blacklist_user(
        self,
        user_id: int,
        admin_id: int | None,
        reason: str,
        notes: str | None = None,
        ip_address: str | None = None,
        user_agent: str | None = None,
    ) -> BlacklistResult:
        """Record an active blacklist entry for ``user_id``.

        ``ip_address`` and ``user_agent`` describe the admin's request; the
        user's own last known address is copied from the user row.

        Raises:
            NotFoundError: if the user does not exist.
            IntegrityConflict: if the user already has an active entry.
        """
        result = await self.db.execute(
            select(User.id, User.real_name, User.email, User.last_ip_address).where(
                User.id == user_id
            )
        )
        user = result.one_or_none()
        if user is None:
            raise NotFoundError("User not found", user_id=user_id)

        existing = await self.db.scalar(
            select(BlacklistedUser.id).where(
                BlacklistedUser.user_id == user_id,
                BlacklistedUser.status == ACTIVE,
            )
        )
        if existing is not None:
            raise IntegrityConflict(ALREADY_BLACKLISTED, user_id=user_id)

        entry = BlacklistedUser(
            user_id=user_id,
            email=user.email,
            admin_id=admin_id,
            reason=reason,
            notes=notes,
            status=ACTIVE,
            ip_address=ip_address,
            user_ip_address=user.last_ip_address,
            user_agent=user_agent,
        )
        self.db.add(entry)
        try:
            await self.db.commit()
        except IntegrityError as e:
            # A concurrent request won the partial unique index
            await self.db.rollback()
            raise IntegrityConflict(ALREADY_BLACKLISTED, user_id=user_id) from e
        except SQLAlchemyError as e:
            await self.db.rollback()
            logger.exception("Failed to blacklist user %s", user_id)
            raise TransactionFailure(f"Failed to blacklist user {user_id}", cause=str(e)) from e

        logger.info("User %s (%s) blacklisted by admin %s", user_id, user.email, admin_id)
        return BlacklistResult(
            success=True,
            message=f"User {user.real_name} ({user.email}) has been blacklisted successfully.",
            entry_id=entry.id,
        )
