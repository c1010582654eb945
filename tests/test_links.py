import uuid

import pytest

from exceptions import Conflict

pytestmark = pytest.mark.asyncio


async def test_create_and_lookup(ctx, player):
    link = await ctx.links.create_link(player.id, player.name, "1001", "alice_chat")
    assert link.active
    assert (await ctx.links.get_link_by_chat_id("1001")).player_id == player.id
    assert (await ctx.links.get_link_by_player(player.id)).chat_id == "1001"
    assert await ctx.links.is_chat_linked("1001")
    assert await ctx.links.is_player_linked(player.id)
    assert not await ctx.links.is_chat_linked("2002")


async def test_one_active_link_per_side(ctx, player):
    await ctx.links.create_link(player.id, player.name, "1001", "alice_chat")
    with pytest.raises(Conflict):
        await ctx.links.create_link(uuid.uuid4(), "Alex", "1001", "alice_chat")
    with pytest.raises(Conflict):
        await ctx.links.create_link(player.id, player.name, "2002", "bob_chat")


async def test_unlink_frees_both_sides(ctx, player):
    await ctx.links.create_link(player.id, player.name, "1001", "alice_chat")
    assert await ctx.links.unlink_player(player.id)
    assert not await ctx.links.unlink_player(player.id)
    assert await ctx.links.get_link_by_player(player.id) is None
    assert await ctx.links.get_all_links() == []

    # the soft-unlinked row must not block a fresh link
    relinked = await ctx.links.create_link(player.id, player.name, "2002", "bob_chat")
    assert relinked.chat_id == "2002"
    other = uuid.uuid4()
    await ctx.links.create_link(other, "Alex", "1001", "alice_chat")
    assert {lk.chat_id for lk in await ctx.links.get_all_links()} == {"1001", "2002"}
