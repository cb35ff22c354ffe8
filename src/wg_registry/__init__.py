from .config import Settings, get_settings
from .errors import ConfigurationError, DaemonError, ServerError
from .registry import TunnelRegistry
from .wireguard import WireGuardDriver

__all__ = [
    "ConfigurationError",
    "DaemonError",
    "ServerError",
    "Settings",
    "TunnelRegistry",
    "WireGuardDriver",
    "get_settings",
]
