from __future__ import annotations

from fastapi import Header, HTTPException, Request

from services.context import AppContext


def get_ctx(request: Request) -> AppContext:
    return request.app.state.ctx


async def require_token(request: Request, authorization: str | None = Header(default=None)):
    token = get_ctx(request).settings.API_TOKEN
    if not token or not authorization or not authorization.startswith("Bearer ") or authorization.split(" ", 1)[1] != token:
        raise HTTPException(status_code=401, detail="Unauthorized")
