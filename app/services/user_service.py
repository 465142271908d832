import logging

from sqlmodel import select
from sqlmodel.ext.asyncio.session import AsyncSession

from app.core.exceptions import StorageError
from app.database import STORAGE_ERRORS
from app.models import User, UserPayload

logger = logging.getLogger(__name__)


class UserService:
    @staticmethod
    async def upsert_google_user(
        user_data: UserPayload | None, db: AsyncSession
    ) -> User:
        """Return the user with this uid, creating it on first sight.

        An existing user is returned as stored; email and display name from
        the request are not applied to it. A request without uid matches the
        user stored without one.
        """
        user_data = user_data or UserPayload()
        if user_data.uid is None:
            lookup = select(User).where(User.uid.is_(None))
        else:
            lookup = select(User).where(User.uid == user_data.uid)
        try:
            result = await db.exec(lookup)
            user = result.first()
            if user is None:
                user = User(
                    uid=user_data.uid,
                    email=user_data.email,
                    display_name=user_data.display_name,
                )
                db.add(user)
                await db.commit()
                await db.refresh(user)
                logger.info("Created user for uid %s", user.uid)
            return user
        except STORAGE_ERRORS:
            logger.exception("Error storing user data")
            raise StorageError("Error storing user data")
