"""Note API routes, all nested under /users/{user_id}/notes.

Learn: The whole router is mounted with Depends(require_owner) in
api/__init__.py, so no handler here runs unless the bearer credential's
subject equals {user_id}. Handlers take the verified owner from
CurrentIdentity and pass it to the NoteStore; the raw path value is never
used as the owner.
"""

from fastapi import APIRouter, Depends, Query, Request
from sqlalchemy.ext.asyncio import AsyncSession

from notekeeper.auth.dependencies import CurrentIdentity, get_context, require_owner
from notekeeper.context import RequestContext
from notekeeper.db.engine import get_db
from notekeeper.errors import InvalidInput
from notekeeper.schemas.note import NoteId, NoteList, NoteRead, NoteWrite
from notekeeper.services.note_store import NoteStore, SortDirection

router = APIRouter(prefix="/users/{user_id}/notes")


def _notes(request: Request, db: AsyncSession = Depends(get_db)) -> NoteStore:
    return NoteStore(db, timeout=request.app.state.settings.query_timeout_seconds)


@router.post("", response_model=NoteId, status_code=201)
async def create_note(
    body: NoteWrite,
    owner: CurrentIdentity = Depends(require_owner),
    notes: NoteStore = Depends(_notes),
    ctx: RequestContext = Depends(get_context),
):
    note_id = await notes.create(ctx, owner.user_id, body.title, body.content)
    return NoteId(id=note_id)


@router.get("", response_model=NoteList)
async def list_notes(
    request: Request,
    limit: int = Query(10, ge=0),
    offset: int = Query(0, ge=0),
    sort: str = Query("asc"),
    owner: CurrentIdentity = Depends(require_owner),
    notes: NoteStore = Depends(_notes),
    ctx: RequestContext = Depends(get_context),
):
    """List the owner's notes by creation time.

    ``sort`` is parsed into SortDirection here; unknown values are a 400 and
    never reach the store.
    """
    max_page_size = request.app.state.settings.max_page_size
    if limit > max_page_size:
        raise InvalidInput(f"limit must not exceed {max_page_size}")
    direction = SortDirection.parse(sort)

    found = await notes.list(ctx, owner.user_id, limit, offset, direction)
    return NoteList(notes=[NoteRead.model_validate(n) for n in found])


@router.get("/{note_id}", response_model=NoteRead)
async def get_note(
    note_id: int,
    owner: CurrentIdentity = Depends(require_owner),
    notes: NoteStore = Depends(_notes),
    ctx: RequestContext = Depends(get_context),
):
    return await notes.get(ctx, note_id, owner.user_id)


@router.put("/{note_id}", response_model=NoteId)
async def update_note(
    note_id: int,
    body: NoteWrite,
    owner: CurrentIdentity = Depends(require_owner),
    notes: NoteStore = Depends(_notes),
    ctx: RequestContext = Depends(get_context),
):
    updated = await notes.update(ctx, note_id, owner.user_id, body.title, body.content)
    return NoteId(id=updated)


@router.delete("/{note_id}", response_model=NoteId)
async def delete_note(
    note_id: int,
    owner: CurrentIdentity = Depends(require_owner),
    notes: NoteStore = Depends(_notes),
    ctx: RequestContext = Depends(get_context),
):
    deleted = await notes.delete(ctx, note_id, owner.user_id)
    return NoteId(id=deleted)
