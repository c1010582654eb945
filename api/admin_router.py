from __future__ import annotations

import uuid
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query

from api.deps import get_ctx, require_token
from api.schemas import (
    EntryCreate,
    EntryOut,
    EntryPage,
    EntryUpdate,
    InvalidateRequest,
    InvalidateResponse,
    InviteCreate,
    LinkOut,
)
from services.context import AppContext
from services.whitelist import paginate

router = APIRouter(prefix="/admin", tags=["admin"], dependencies=[Depends(require_token)])


@router.get("/entries", response_model=EntryPage)
async def list_entries(
    server: Optional[str] = None,
    page: int = Query(1, ge=1),
    per_page: int = Query(10, ge=1, le=100),
    ctx: AppContext = Depends(get_ctx),
):
    if server:
        entries = await ctx.whitelist.get_entries_by_server(server)
    else:
        entries = await ctx.whitelist.get_all_active_entries()
    items, pages = paginate(entries, page, per_page)
    return EntryPage(
        items=[EntryOut.model_validate(e) for e in items],
        page=min(page, pages),
        pages=pages,
        total=len(entries),
    )


@router.get("/players/{player_id}/entries", response_model=list[EntryOut])
async def player_entries(player_id: uuid.UUID, ctx: AppContext = Depends(get_ctx)):
    return [EntryOut.model_validate(e) for e in await ctx.whitelist.get_entries_by_player(player_id)]


@router.get("/count")
async def entry_count(server: Optional[str] = None, ctx: AppContext = Depends(get_ctx)):
    return {"server": server, "count": await ctx.whitelist.get_entry_count(server)}


@router.post("/entries", response_model=EntryOut)
async def add_entry(body: EntryCreate, ctx: AppContext = Depends(get_ctx)):
    entry = await ctx.whitelist.add_entry(
        body.player_id,
        body.player_name,
        body.server,
        registration_type=body.registration_type,
        reason=body.reason,
        added_by=body.added_by,
        expires_at=body.expires_at,
    )
    return EntryOut.model_validate(entry)


@router.post("/invite", response_model=EntryOut)
async def invite(body: InviteCreate, ctx: AppContext = Depends(get_ctx)):
    if await ctx.whitelist.is_whitelisted(body.player_id, body.server, body.player_name):
        raise HTTPException(status_code=409, detail=f"{body.player_name} is already whitelisted")
    entry = await ctx.whitelist.invite(
        body.player_id,
        body.player_name,
        body.inviter_name,
        inviter_player_id=body.inviter_player_id,
        reason=body.reason,
        server_name=body.server,
    )
    return EntryOut.model_validate(entry)


@router.get("/names/{player_name}")
async def nickname_taken(player_name: str, ctx: AppContext = Depends(get_ctx)):
    return {"player_name": player_name, "taken": await ctx.whitelist.is_nickname_taken(player_name)}


@router.patch("/entries/{player_id}/{server}", response_model=EntryOut)
async def update_entry(player_id: uuid.UUID, server: str, body: EntryUpdate, ctx: AppContext = Depends(get_ctx)):
    fields = body.model_dump(exclude_unset=True)
    if fields.get("player_name", "") is None:
        # the name column is required; null means leave it alone
        del fields["player_name"]
    if fields and not await ctx.whitelist.update_entry(player_id, server, **fields):
        raise HTTPException(status_code=404, detail="Entry not found")
    entry = await ctx.whitelist.get_entry(player_id, server)
    if entry is None:
        raise HTTPException(status_code=404, detail="Entry not found")
    return EntryOut.model_validate(entry)


@router.delete("/entries/{player_id}/{server}")
async def remove_entry(player_id: uuid.UUID, server: str, soft: bool = False, ctx: AppContext = Depends(get_ctx)):
    # soft keeps the row and only switches it off
    if soft:
        removed = await ctx.whitelist.deactivate(player_id, server)
    else:
        removed = await ctx.whitelist.remove_entry(player_id, server)
    if not removed:
        raise HTTPException(status_code=404, detail="Entry not found")
    return {"ok": True}


@router.get("/links", response_model=list[LinkOut])
async def list_links(ctx: AppContext = Depends(get_ctx)):
    return [LinkOut.model_validate(link) for link in await ctx.links.get_all_links()]


@router.delete("/links/{player_id}")
async def unlink(player_id: uuid.UUID, ctx: AppContext = Depends(get_ctx)):
    if not await ctx.links.unlink_player(player_id):
        raise HTTPException(status_code=404, detail="Link not found")
    return {"ok": True}


@router.post("/cache/invalidate", response_model=InvalidateResponse)
async def invalidate_cache(body: InvalidateRequest, ctx: AppContext = Depends(get_ctx)):
    cache = ctx.cache
    if body.player_id and body.server:
        removed = cache.invalidate(body.player_id, body.server)
        return InvalidateResponse(scope="entry", removed=int(removed))
    if body.player_id:
        return InvalidateResponse(scope="player", removed=cache.invalidate_player(body.player_id))
    if body.server:
        return InvalidateResponse(scope="server", removed=cache.invalidate_server(body.server))
    removed = len(cache)
    cache.invalidate_all()
    return InvalidateResponse(scope="all", removed=removed)
