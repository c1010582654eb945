# services/heartbeat_task.py
import asyncio
import logging

from exceptions import WhitelistError

log = logging.getLogger(__name__)


def setup_heartbeat_task(ctx) -> asyncio.Task:
    """Register this server, then keep its heartbeat and whitelist flag fresh."""
    settings = ctx.settings

    async def beater():
        name = settings.SERVER_NAME
        registered = False
        while True:
            try:
                if not registered:
                    await ctx.registry.register_server(
                        name, settings.server_display_name, settings.WHITELIST_ENABLED
                    )
                    registered = True
                else:
                    # a row deleted by an admin is recreated on the next tick
                    if not await ctx.registry.update_heartbeat(name):
                        registered = False
                        continue
                    await ctx.registry.update_whitelist_enabled(name, settings.WHITELIST_ENABLED)
            except WhitelistError as e:
                log.warning("[heartbeat] %s: %s; retrying next tick", name, e)
            except Exception:
                log.exception("[heartbeat] %s: unexpected error; retrying next tick", name)

            await asyncio.sleep(settings.HEARTBEAT_INTERVAL_SECONDS)

    return asyncio.create_task(beater(), name="server-heartbeat")


def setup_code_sweeper(ctx) -> asyncio.Task:
    """Periodically delete expired registration codes."""
    interval = ctx.settings.CODE_SWEEP_INTERVAL_SECONDS

    async def sweeper():
        while True:
            await asyncio.sleep(interval)
            try:
                await ctx.codes.purge_expired()
            except WhitelistError as e:
                log.warning("[sweeper] expired-code purge failed: %s", e)
            except Exception:
                log.exception("[sweeper] unexpected error during expired-code purge")

    return asyncio.create_task(sweeper(), name="code-sweeper")
