"""Note store — ownership-scoped persistence for notes.

Learn: Every query filters on BOTH the note id and the owner id handed over
by the AuthorizationGuard. A note that exists but belongs to someone else
is reported exactly like a note that does not exist (NotFound), so one
user cannot probe for another user's note ids.

Sorting is the one piece of user input that used to end up inside query
text. Here the direction is a closed enum mapped to a fixed SQLAlchemy
ordering clause; the store re-checks the enum even though the API layer
already parsed it, so a caller that skips the API cannot smuggle text in.
"""

import enum
from datetime import datetime
from typing import Callable

from sqlalchemy import delete, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from notekeeper.context import RequestContext
from notekeeper.db.models import MAX_ID, Note, utcnow
from notekeeper.errors import InvalidInput, NoResults, NotFound
from notekeeper.services.base import FOREIGN_KEY_VIOLATION, StoreBase, integrity_code


class SortDirection(str, enum.Enum):
    ASCENDING = "asc"
    DESCENDING = "desc"

    @classmethod
    def parse(cls, value: str) -> "SortDirection":
        normalized = (value or "").strip().lower()
        if normalized in ("asc", "ascending"):
            return cls.ASCENDING
        if normalized in ("desc", "descending"):
            return cls.DESCENDING
        raise InvalidInput('sort must be either "asc" or "desc"')


_ORDERING = {
    SortDirection.ASCENDING: (Note.created_at.asc(), Note.id.asc()),
    SortDirection.DESCENDING: (Note.created_at.desc(), Note.id.desc()),
}


def _require_title(title: str) -> None:
    if not title or not title.strip():
        raise InvalidInput("title is a required field")


def _require_storable_id(note_id: int) -> None:
    # No row can have an id outside the column range
    if not 0 < note_id <= MAX_ID:
        raise NotFound("note not found")


class NoteStore(StoreBase):
    """CRUD on notes, always scoped to the owning user."""

    def __init__(
        self,
        db: AsyncSession,
        timeout: float,
        clock: Callable[[], datetime] = utcnow,
    ):
        super().__init__(db, timeout)
        self.clock = clock

    async def create(
        self, ctx: RequestContext, owner: int, title: str, content: str = ""
    ) -> int:
        _require_title(title)

        async def work() -> int:
            now = self.clock()
            note = Note(
                user_id=owner,
                title=title,
                content=content or "",
                created_at=now,
                updated_at=now,
            )
            self.db.add(note)
            try:
                await self.db.flush()
            except IntegrityError as e:
                await self.db.rollback()
                if integrity_code(e) == FOREIGN_KEY_VIOLATION:
                    raise NotFound("owner not found") from e
                raise
            await self.db.commit()
            return note.id

        note_id = await self._run(ctx, "notes.create", work)
        ctx.log.info("note.saved", note_id=note_id, owner=owner)
        return note_id

    async def get(self, ctx: RequestContext, note_id: int, owner: int) -> Note:
        _require_storable_id(note_id)

        async def work() -> Note:
            result = await self.db.execute(
                select(Note)
                .where(Note.id == note_id, Note.user_id == owner)
                .execution_options(populate_existing=True)
            )
            note = result.scalars().first()
            if note is None:
                raise NotFound("note not found")
            return note

        return await self._run(ctx, "notes.get", work)

    async def list(
        self,
        ctx: RequestContext,
        owner: int,
        limit: int,
        offset: int,
        direction: SortDirection,
    ) -> list[Note]:
        """One page of the owner's notes ordered by creation time.

        Raises NoResults only when the owner has no notes at all; a page past
        the end of an existing collection comes back empty.
        """
        if not isinstance(direction, SortDirection):
            raise InvalidInput('sort must be either "asc" or "desc"')
        if limit < 0 or offset < 0:
            raise InvalidInput("limit and offset must be non-negative")
        ordering = _ORDERING[direction]

        async def work() -> list[Note]:
            result = await self.db.execute(
                select(Note)
                .where(Note.user_id == owner)
                .order_by(*ordering)
                .limit(limit)
                .offset(offset)
                .execution_options(populate_existing=True)
            )
            notes = list(result.scalars().all())
            if notes:
                return notes
            if offset == 0 and limit > 0:
                raise NoResults("user has no notes")
            exists = await self.db.execute(
                select(Note.id).where(Note.user_id == owner).limit(1)
            )
            if exists.scalar_one_or_none() is None:
                raise NoResults("user has no notes")
            return []

        notes = await self._run(ctx, "notes.list", work)
        ctx.log.info("notes.listed", owner=owner, ids=[n.id for n in notes])
        return notes

    async def update(
        self,
        ctx: RequestContext,
        note_id: int,
        owner: int,
        title: str,
        content: str = "",
    ) -> int:
        _require_storable_id(note_id)
        _require_title(title)

        async def work() -> int:
            result = await self.db.execute(
                update(Note)
                .where(Note.id == note_id, Note.user_id == owner)
                .values(title=title, content=content or "", updated_at=self.clock())
                .returning(Note.id)
                .execution_options(synchronize_session=False)
            )
            updated = result.scalar_one_or_none()
            if updated is None:
                raise NotFound("note not found")
            await self.db.commit()
            return updated

        updated = await self._run(ctx, "notes.update", work)
        ctx.log.info("note.updated", note_id=updated, owner=owner)
        return updated

    async def delete(self, ctx: RequestContext, note_id: int, owner: int) -> int:
        _require_storable_id(note_id)

        async def work() -> int:
            result = await self.db.execute(
                delete(Note)
                .where(Note.id == note_id, Note.user_id == owner)
                .returning(Note.id)
                .execution_options(synchronize_session=False)
            )
            deleted = result.scalar_one_or_none()
            if deleted is None:
                raise NotFound("note not found")
            await self.db.commit()
            return deleted

        deleted = await self._run(ctx, "notes.delete", work)
        ctx.log.info("note.deleted", note_id=deleted, owner=owner)
        return deleted
