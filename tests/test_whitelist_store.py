import uuid
from datetime import timedelta

import pytest

from models import RegistrationType
from services.whitelist import paginate
from utils.clock import utcnow

pytestmark = pytest.mark.asyncio


async def test_add_and_check(ctx, player):
    assert not await ctx.whitelist.is_whitelisted(player.id, "survival")
    entry = await ctx.whitelist.add_entry(player.id, player.name, added_by="admin")
    assert entry.server_name == "survival"
    assert entry.registration_type is RegistrationType.MANUAL
    assert entry.is_valid
    assert await ctx.whitelist.is_whitelisted(player.id)
    assert not await ctx.whitelist.is_whitelisted(player.id, "creative")


async def test_upsert_overwrites_and_keeps_one_row(ctx, player):
    await ctx.whitelist.add_entry(player.id, player.name, reason="first", added_by="admin")
    again = await ctx.whitelist.add_entry(
        player.id, "SteveRenamed", registration_type=RegistrationType.INVITE, reason="second"
    )
    assert again.player_name == "SteveRenamed"
    assert again.reason == "second"
    assert again.added_by is None
    assert again.registration_type is RegistrationType.INVITE
    assert len(await ctx.whitelist.get_entries_by_player(player.id)) == 1


async def test_expired_and_inactive_entries_do_not_grant(ctx, player):
    other = uuid.uuid4()
    await ctx.whitelist.add_entry(player.id, player.name, expires_at=utcnow() - timedelta(seconds=1))
    await ctx.whitelist.add_entry(other, "Alex", active=False)
    assert not await ctx.whitelist.is_whitelisted(player.id)
    assert not await ctx.whitelist.is_whitelisted(other)

    entry = await ctx.whitelist.get_entry(player.id)
    assert entry.is_expired and not entry.is_valid


async def test_future_expiry_grants(ctx, player):
    await ctx.whitelist.add_entry(player.id, player.name, expires_at=utcnow() + timedelta(days=1))
    assert await ctx.whitelist.is_whitelisted(player.id)
    assert await ctx.whitelist.get_player_servers(player.id) == ["survival"]


async def test_name_fallback_is_case_insensitive(ctx, player):
    await ctx.whitelist.add_entry(uuid.uuid4(), "Steve", reason="imported by name")
    assert not await ctx.whitelist.is_whitelisted(player.id, "survival")
    assert await ctx.whitelist.is_whitelisted(player.id, "survival", "sTeVe")
    assert not await ctx.whitelist.is_whitelisted(player.id, "survival", "Herobrine")


async def test_deactivate_then_remove(ctx, player):
    await ctx.whitelist.add_entry(player.id, player.name)
    assert await ctx.whitelist.deactivate(player.id)
    assert not await ctx.whitelist.is_whitelisted(player.id)
    assert await ctx.whitelist.get_entry(player.id) is not None

    assert await ctx.whitelist.remove_entry(player.id)
    assert await ctx.whitelist.get_entry(player.id) is None
    assert not await ctx.whitelist.remove_entry(player.id)


async def test_update_entry_fields(ctx, player):
    await ctx.whitelist.add_entry(player.id, player.name)
    assert await ctx.whitelist.update_entry(player.id, "survival", reason="vip")
    assert (await ctx.whitelist.get_entry(player.id)).reason == "vip"
    assert not await ctx.whitelist.update_entry(player.id, "nowhere", reason="x")


async def test_counts_and_listings(ctx):
    ids = [uuid.uuid4() for _ in range(3)]
    await ctx.whitelist.add_entry(ids[0], "A")
    await ctx.whitelist.add_entry(ids[1], "B")
    await ctx.whitelist.add_entry(ids[2], "C", "creative")
    await ctx.whitelist.add_entry(ids[2], "C", active=False)

    assert await ctx.whitelist.get_entry_count() == 3
    assert await ctx.whitelist.get_entry_count("survival") == 2
    assert [e.player_name for e in await ctx.whitelist.get_entries_by_server()] == ["A", "B"]
    assert len(await ctx.storage.get_all_active_entries()) == 3
    assert await ctx.whitelist.is_nickname_taken("c")
    assert not await ctx.whitelist.is_nickname_taken("D")


async def test_add_to_servers_writes_every_server(ctx, player):
    last = await ctx.whitelist.add_to_servers(
        player.id, player.name, ["survival", "creative"], registration_type=RegistrationType.CODE
    )
    assert last.server_name == "creative"
    assert await ctx.whitelist.get_player_servers(player.id) == ["creative", "survival"]


async def test_invite_records_inviter_chat(ctx, player):
    inviter = uuid.uuid4()
    await ctx.links.create_link(inviter, "Inviter", "9009", "inviter_chat")
    entry = await ctx.whitelist.invite(player.id, player.name, "Inviter", inviter_player_id=inviter)
    assert entry.registration_type is RegistrationType.INVITE
    assert entry.reason == "Invited by Inviter"
    assert entry.inviter_chat_id == "9009"


async def test_paginate():
    items = list(range(25))
    page, pages = paginate(items, page=3, per_page=10)
    assert page == [20, 21, 22, 23, 24]
    assert pages == 3
    assert paginate([], page=5) == ([], 1)
    assert paginate(items, page=99, per_page=10)[0] == page
