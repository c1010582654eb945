import asyncio
import uuid
from datetime import timedelta

import pytest

from exceptions import StorageError
from models import RegistrationCode, RegistrationType
from services.activation import ActivationOrchestrator, ActivationReason
from utils.clock import utcnow

pytestmark = pytest.mark.asyncio


async def test_happy_path_links_and_whitelists(ctx, player):
    code = await ctx.codes.issue_code("1001", "alice_chat")

    result = await ctx.activation.activate(code.code.lower(), player.id, player.name)

    assert result.success
    assert result.reason is ActivationReason.SUCCESS
    assert result.entry.registration_type is RegistrationType.CODE
    assert result.entry.reason == "Linked via chat: @alice_chat"
    assert result.entry.added_by == "ChatLink"
    assert await ctx.whitelist.is_whitelisted(player.id, "survival")
    link = await ctx.links.get_link_by_chat_id("1001")
    assert link.player_id == player.id and link.player_name == player.name
    used = await ctx.codes.get_code(code.code)
    assert used.used and used.used_by_id == player.id


async def test_unknown_code(ctx, player):
    result = await ctx.activation.activate("ZZZ-ZZZ", player.id, player.name)
    assert not result.success
    assert result.reason is ActivationReason.CODE_INVALID
    assert "invalid" in result.message


async def test_expired_code(ctx, storage, player):
    past = utcnow() - timedelta(minutes=1)
    await storage.create_code(
        RegistrationCode(code="AAA-BBB", chat_id="1001", created_at=past - timedelta(minutes=30), expires_at=past)
    )
    result = await ctx.activation.activate("AAA-BBB", player.id, player.name)
    assert result.reason is ActivationReason.CODE_INVALID
    assert await ctx.links.get_link_by_player(player.id) is None


async def test_reused_code(ctx, player):
    code = await ctx.codes.issue_code("1001", "alice_chat")
    assert (await ctx.activation.activate(code.code, player.id, player.name)).success
    result = await ctx.activation.activate(code.code, uuid.uuid4(), "Alex")
    assert result.reason is ActivationReason.CODE_INVALID


async def test_already_whitelisted_keeps_code(ctx, player):
    await ctx.whitelist.add_entry(player.id, player.name, added_by="admin")
    code = await ctx.codes.issue_code("1001", "alice_chat")

    result = await ctx.activation.activate(code.code, player.id, player.name)

    assert result.reason is ActivationReason.ALREADY_WHITELISTED
    assert (await ctx.codes.get_code(code.code)).used is False
    assert await ctx.links.get_link_by_chat_id("1001") is None


async def test_chat_already_linked_to_other_player(ctx, player):
    await ctx.links.create_link(uuid.uuid4(), "Alex", "1001", "alice_chat")
    code = await ctx.codes.issue_code("1001", "alice_chat")

    result = await ctx.activation.activate(code.code, player.id, player.name)

    assert result.reason is ActivationReason.TELEGRAM_ALREADY_LINKED
    assert (await ctx.codes.get_code(code.code)).used is False
    assert not await ctx.whitelist.is_whitelisted(player.id)


async def test_player_already_linked_to_other_chat(ctx, player):
    await ctx.links.create_link(player.id, player.name, "2002", "bob_chat")
    code = await ctx.codes.issue_code("1001", "alice_chat")

    result = await ctx.activation.activate(code.code, player.id, player.name)

    assert result.reason is ActivationReason.PLAYER_ALREADY_LINKED
    assert (await ctx.codes.get_code(code.code)).used is False


async def test_same_pair_relinks_on_new_server(ctx, player):
    # linked earlier and whitelisted elsewhere; this server has no entry yet
    await ctx.links.create_link(player.id, player.name, "1001", "alice_chat")
    await ctx.whitelist.add_entry(player.id, player.name, "creative")
    code = await ctx.codes.issue_code("1001", "alice_chat")

    result = await ctx.activation.activate(code.code, player.id, player.name)

    assert result.success
    assert await ctx.whitelist.get_player_servers(player.id) == ["creative", "survival"]
    assert len(await ctx.links.get_all_links()) == 1


async def test_concurrent_activation_has_one_winner(ctx):
    code = await ctx.codes.issue_code("1001", "alice_chat")
    players = [(uuid.uuid4(), f"Player{i}") for i in range(5)]

    results = await asyncio.gather(*(ctx.activation.activate(code.code, pid, name) for pid, name in players))

    winners = [r for r in results if r.success]
    assert len(winners) == 1
    losers = [r for r in results if not r.success]
    assert {r.reason for r in losers} <= {
        ActivationReason.CODE_INVALID,
        ActivationReason.TELEGRAM_ALREADY_LINKED,
    }
    assert len(await ctx.links.get_all_links()) == 1
    assert await ctx.whitelist.get_entry_count("survival") == 1


async def test_activation_servers_fan_out(ctx, player):
    activation = ActivationOrchestrator(
        ctx.storage,
        ctx.codes,
        ctx.links,
        ctx.whitelist,
        server_name="survival",
        activation_servers=["survival", "creative", "skyblock"],
        actor="Bot",
    )
    code = await ctx.codes.issue_code("1001", None)

    result = await activation.activate(code.code, player.id, player.name)

    assert result.success
    assert result.entry.reason == "Linked via chat: @1001"
    assert await ctx.whitelist.get_player_servers(player.id) == ["creative", "skyblock", "survival"]


async def test_failure_after_consume_rolls_everything_back(ctx, player, monkeypatch):
    code = await ctx.codes.issue_code("1001", "alice_chat")

    async def boom(*_a, **_k):
        raise StorageError("disk full")

    monkeypatch.setattr(ctx.whitelist, "add_to_servers", boom)

    with pytest.raises(StorageError):
        await ctx.activation.activate(code.code, player.id, player.name)

    assert (await ctx.codes.get_code(code.code)).used is False
    assert await ctx.links.get_link_by_player(player.id) is None
    assert not await ctx.whitelist.is_whitelisted(player.id)


async def test_code_typed_without_dash(ctx, player):
    code = await ctx.codes.issue_code("1001", "alice_chat")

    result = await ctx.activation.activate(code.code.replace("-", "").lower(), player.id, player.name)

    assert result.success
    assert (await ctx.codes.get_code(code.code)).used is True
