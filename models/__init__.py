from models.base import Base
from models.codes import RegistrationCode
from models.links import PlayerLink
from models.server import ServerInfo
from models.whitelist import RegistrationType, WhitelistEntry

__all__ = [
    "Base",
    "PlayerLink",
    "RegistrationCode",
    "RegistrationType",
    "ServerInfo",
    "WhitelistEntry",
]
