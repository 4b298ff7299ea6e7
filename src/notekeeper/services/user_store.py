"""User store — creates identities.

Learn: There is no "does this username exist?" query before the insert.
Two concurrent registrations would both pass such a check; the unique
constraint on users.username is the only reliable arbiter, so we insert
and translate the constraint violation into AlreadyExists.
"""

from sqlalchemy.exc import IntegrityError

from notekeeper.context import RequestContext
from notekeeper.db.models import User
from notekeeper.errors import AlreadyExists, InvalidInput
from notekeeper.services.base import UNIQUE_VIOLATION, StoreBase, integrity_code


class UserStore(StoreBase):
    async def create(self, ctx: RequestContext, username: str) -> int:
        if not username or not username.strip():
            raise InvalidInput("username is a required field")

        async def work() -> int:
            user = User(username=username)
            self.db.add(user)
            try:
                await self.db.flush()
            except IntegrityError as e:
                await self.db.rollback()
                if integrity_code(e) == UNIQUE_VIOLATION:
                    raise AlreadyExists("user with this username already exists") from e
                raise
            await self.db.commit()
            return user.id

        user_id = await self._run(ctx, "users.create", work)
        ctx.log.info("user.saved", user_id=user_id)
        return user_id
