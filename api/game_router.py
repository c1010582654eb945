from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException

from api.deps import get_ctx, require_token
from api.schemas import (
    AccessRequest,
    AccessResponse,
    ActivateRequest,
    ActivateResponse,
    EntryOut,
    JoinResponse,
    ServerOut,
    ServerRegister,
    WhitelistToggle,
)
from services.context import AppContext

router = APIRouter(tags=["game"], dependencies=[Depends(require_token)])


@router.post("/access/check", response_model=AccessResponse)
async def check_access(req: AccessRequest, ctx: AppContext = Depends(get_ctx)):
    decision = await ctx.gate.check_access(req.player_id, req.player_name, req.server)
    return AccessResponse(allowed=decision.allowed, reason=decision.reason)


@router.post("/access/join", response_model=JoinResponse)
async def player_join(req: AccessRequest, ctx: AppContext = Depends(get_ctx)):
    entry = await ctx.gate.handle_join(req.player_id, req.player_name, req.server)
    return JoinResponse(added=entry is not None, entry=EntryOut.model_validate(entry) if entry else None)


@router.post("/codes/activate", response_model=ActivateResponse)
async def activate_code(req: ActivateRequest, ctx: AppContext = Depends(get_ctx)):
    result = await ctx.activation.activate(req.code, req.player_id, req.player_name, req.server)
    return ActivateResponse(
        success=result.success,
        reason=result.reason.value,
        message=result.message,
        entry=EntryOut.model_validate(result.entry) if result.entry else None,
    )


@router.get("/servers", response_model=list[ServerOut])
async def list_servers(ctx: AppContext = Depends(get_ctx)):
    return [ServerOut.model_validate(s) for s in await ctx.registry.get_all_servers()]


@router.put("/servers/{name}", response_model=ServerOut)
async def register_server(name: str, body: ServerRegister, ctx: AppContext = Depends(get_ctx)):
    info = await ctx.registry.register_server(name, body.display_name, body.whitelist_enabled)
    return ServerOut.model_validate(info)


@router.post("/servers/{name}/heartbeat")
async def heartbeat(name: str, ctx: AppContext = Depends(get_ctx)):
    if not await ctx.registry.update_heartbeat(name):
        raise HTTPException(status_code=404, detail=f"Unknown server {name}")
    return {"ok": True}


@router.patch("/servers/{name}/whitelist")
async def toggle_whitelist(name: str, body: WhitelistToggle, ctx: AppContext = Depends(get_ctx)):
    if not await ctx.registry.update_whitelist_enabled(name, body.enabled):
        raise HTTPException(status_code=404, detail=f"Unknown server {name}")
    return {"ok": True, "enabled": body.enabled}
