import logging
import sys

LOG_FORMAT = "[%(asctime)s] [%(levelname)s] %(name)s: %(message)s"

# libraries that log every query or gateway frame at DEBUG/INFO
_NOISY = ("sqlalchemy.engine", "aiosqlite", "discord.gateway", "discord.client")


def configure_logging(level: str = "INFO"):
    root = logging.getLogger()
    root.setLevel(level.upper())
    for name in _NOISY:
        logging.getLogger(name).setLevel(logging.WARNING)
    # create_app may run more than once per process
    if any(getattr(h, "_whitelist_handler", False) for h in root.handlers):
        return
    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(logging.Formatter(LOG_FORMAT))
    handler._whitelist_handler = True
    root.addHandler(handler)
