import uuid

import httpx
import pytest

from exceptions import StorageError
from main import create_app

pytestmark = pytest.mark.asyncio

AUTH = {"Authorization": "Bearer test-token"}


@pytest.fixture
async def client(ctx):
    app = create_app(ctx=ctx, start_services=False)
    transport = httpx.ASGITransport(app=app)
    async with httpx.AsyncClient(transport=transport, base_url="http://test", headers=AUTH) as c:
        yield c


async def test_health(client):
    r = await client.get("/health")
    assert r.status_code == 200
    assert r.json()["server"] == "survival"


async def test_requires_token(client):
    r = await client.get("/servers", headers={"Authorization": "Bearer nope"})
    assert r.status_code == 401


async def test_activate_then_access(client, ctx):
    code = await ctx.codes.issue_code("1001", "alice_chat")
    pid = str(uuid.uuid4())

    denied = await client.post("/access/check", json={"player_id": pid, "player_name": "Steve", "server": "survival"})
    assert denied.json() == {"allowed": False, "reason": "not-whitelisted"}

    r = await client.post("/codes/activate", json={"code": code.code, "player_id": pid, "player_name": "Steve"})
    body = r.json()
    assert r.status_code == 200
    assert body["success"] is True
    assert body["reason"] == "success"
    assert body["entry"]["registration_type"] == "CODE"

    # the negative answer is still cached until invalidated
    stale = await client.post("/access/check", json={"player_id": pid, "player_name": "Steve", "server": "survival"})
    assert stale.json()["allowed"] is False
    inv = await client.post("/admin/cache/invalidate", json={"player_id": pid, "server": "survival"})
    assert inv.json() == {"scope": "entry", "removed": 1}
    fresh = await client.post("/access/check", json={"player_id": pid, "player_name": "Steve", "server": "survival"})
    assert fresh.json() == {"allowed": True, "reason": "whitelisted"}


async def test_activate_bad_code(client):
    r = await client.post(
        "/codes/activate", json={"code": "nope", "player_id": str(uuid.uuid4()), "player_name": "Steve"}
    )
    assert r.json()["success"] is False
    assert r.json()["reason"] == "code-invalid"


async def test_server_lifecycle(client):
    r = await client.put("/servers/creative", json={"display_name": "Creative", "whitelist_enabled": True})
    assert r.status_code == 200
    assert r.json()["is_online"] is True

    assert (await client.post("/servers/creative/heartbeat")).status_code == 200
    assert (await client.post("/servers/ghost/heartbeat")).status_code == 404
    r = await client.patch("/servers/creative/whitelist", json={"enabled": False})
    assert r.json() == {"ok": True, "enabled": False}
    assert (await client.patch("/servers/ghost/whitelist", json={"enabled": False})).status_code == 404

    servers = (await client.get("/servers")).json()
    assert [s["name"] for s in servers] == ["creative"]
    assert servers[0]["whitelist_enabled"] is False


async def test_admin_entries(client):
    pid = str(uuid.uuid4())
    r = await client.post("/admin/entries", json={"player_id": pid, "player_name": "Steve", "added_by": "admin"})
    assert r.status_code == 200
    assert r.json()["server_name"] == "survival"

    page = (await client.get("/admin/entries", params={"per_page": 5})).json()
    assert page["total"] == 1 and page["pages"] == 1
    assert (await client.get("/admin/count")).json()["count"] == 1
    assert len((await client.get(f"/admin/players/{pid}/entries")).json()) == 1

    assert (await client.delete(f"/admin/entries/{pid}/survival")).status_code == 200
    assert (await client.delete(f"/admin/entries/{pid}/survival")).status_code == 404


async def test_admin_invite(client):
    body = {"player_id": str(uuid.uuid4()), "player_name": "Alex", "inviter_name": "Steve"}
    r = await client.post("/admin/invite", json=body)
    assert r.status_code == 200
    assert r.json()["registration_type"] == "INVITE"
    assert (await client.post("/admin/invite", json=body)).status_code == 409


async def test_admin_links(client, ctx):
    pid = uuid.uuid4()
    await ctx.links.create_link(pid, "Steve", "1001", "alice_chat")
    links = (await client.get("/admin/links")).json()
    assert links[0]["chat_id"] == "1001"
    assert (await client.delete(f"/admin/links/{pid}")).status_code == 200
    assert (await client.delete(f"/admin/links/{pid}")).status_code == 404


async def test_cache_invalidate_all(client):
    r = await client.post("/admin/cache/invalidate", json={})
    assert r.json()["scope"] == "all"


async def test_storage_error_maps_to_503(client, ctx, monkeypatch):
    async def boom(*_a, **_k):
        raise StorageError("connection refused")

    monkeypatch.setattr(ctx.registry, "get_all_servers", boom)
    r = await client.get("/servers")
    assert r.status_code == 503
    assert "connection refused" not in r.text


async def test_admin_update_and_soft_delete(client, ctx):
    pid = str(uuid.uuid4())
    await client.post("/admin/entries", json={"player_id": pid, "player_name": "Steve"})
    await client.post("/admin/entries", json={"player_id": pid, "player_name": "Steve", "server": "creative"})

    r = await client.patch(f"/admin/entries/{pid}/survival", json={"reason": "vip", "player_name": None})
    assert r.status_code == 200
    assert r.json()["reason"] == "vip"
    assert r.json()["player_name"] == "Steve"
    assert (await client.patch(f"/admin/entries/{pid}/ghost", json={"reason": "x"})).status_code == 404

    assert (await client.get("/admin/entries")).json()["total"] == 2
    assert (await client.get("/admin/entries", params={"server": "creative"})).json()["total"] == 1

    r = await client.delete(f"/admin/entries/{pid}/survival", params={"soft": "true"})
    assert r.status_code == 200
    assert not await ctx.whitelist.is_whitelisted(uuid.UUID(pid), "survival")
    entry = await ctx.whitelist.get_entry(uuid.UUID(pid), "survival")
    assert entry is not None and entry.active is False
    assert (await client.get("/admin/entries")).json()["total"] == 1


async def test_admin_nickname_check(client):
    await client.post("/admin/entries", json={"player_id": str(uuid.uuid4()), "player_name": "Steve"})
    assert (await client.get("/admin/names/steve")).json()["taken"] is True
    assert (await client.get("/admin/names/Alex")).json()["taken"] is False
