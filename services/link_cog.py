# services/link_cog.py
from __future__ import annotations

import logging

import discord
from discord import app_commands
from discord.ext import commands

from exceptions import StorageError

log = logging.getLogger(__name__)

TRY_AGAIN = "Something went wrong, try again later."


def _code_embed(code: str, minutes: int, server: str) -> discord.Embed:
    emb = discord.Embed(
        title="Your registration code",
        description=f"Join **{server}** and type:\n```text\n/code {code}\n```",
        color=0x2ECC71,
    )
    emb.set_footer(text=f"Valid for {minutes} minutes, single use.")
    return emb


class LinkCog(commands.Cog):
    """Chat side of the pairing flow: hand out codes and show link status."""

    def __init__(self, bot: commands.Bot, ctx):
        self.bot = bot
        self.ctx = ctx

    async def _reply(self, inter: discord.Interaction, content: str | None = None, embed: discord.Embed | None = None):
        kwargs = {"ephemeral": True}
        if embed is not None:
            kwargs["embed"] = embed
        if not inter.response.is_done():
            await inter.response.send_message(content, **kwargs)
        else:
            await inter.followup.send(content, **kwargs)

    @app_commands.command(name="code", description="Get a code to link your game account")
    async def code(self, interaction: discord.Interaction):
        chat_id = str(interaction.user.id)
        settings = self.ctx.settings
        try:
            link = await self.ctx.links.get_link_by_chat_id(chat_id)
            if link is not None:
                return await self._reply(interaction, f"You are already linked to **{link.player_name}**.")
            active = await self.ctx.codes.get_active_code(chat_id)
            if active is None:
                active = await self.ctx.codes.issue_code(chat_id, interaction.user.name)
        except StorageError:
            log.exception("[link_cog] /code failed for %s", chat_id)
            return await self._reply(interaction, TRY_AGAIN)
        await self._reply(
            interaction,
            embed=_code_embed(active.code, settings.CODE_TTL_MINUTES, settings.server_display_name),
        )

    @app_commands.command(name="link", description="Show your link status")
    async def link(self, interaction: discord.Interaction):
        chat_id = str(interaction.user.id)
        try:
            link = await self.ctx.links.get_link_by_chat_id(chat_id)
            active = None if link else await self.ctx.codes.get_active_code(chat_id)
        except StorageError:
            log.exception("[link_cog] /link failed for %s", chat_id)
            return await self._reply(interaction, TRY_AGAIN)
        if link is not None:
            when = discord.utils.format_dt(link.linked_at, style="R")
            return await self._reply(interaction, f"Linked to **{link.player_name}** {when}.")
        if active is not None:
            return await self._reply(interaction, f"Not linked yet. Your active code is `{active.code}`.")
        await self._reply(interaction, "Not linked. Use /code to get a registration code.")
