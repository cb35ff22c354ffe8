# src/wg_registry/errors.py
from __future__ import annotations
from typing import Optional, Sequence


class ServerError(Exception):
    """
    Erreur métier destinée à être affichée telle quelle à l'utilisateur.
    `status_code` suit la sémantique HTTP (404, 400, ...).
    """

    status_code: Optional[int] = None

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.message = message
        if status_code is not None:
            self.status_code = status_code


class PeerNotFound(ServerError):
    status_code = 404

    def __init__(self, peer_id: str):
        super().__init__(f"Client Not Found: {peer_id}")
        self.peer_id = peer_id


class MissingName(ServerError):
    status_code = 400

    def __init__(self):
        super().__init__("Missing: Name")


class InvalidAddress(ServerError):
    status_code = 400

    def __init__(self, address: str):
        super().__init__(f"Invalid Address: {address}")
        self.address = address


class AddressSpaceExhausted(ServerError):
    status_code = 409

    def __init__(self, network: str):
        super().__init__(f"Maximum number of clients reached in {network}")


class ConfigurationError(Exception):
    """Configuration invalide, pas de reprise possible."""


class DaemonError(Exception):
    """Une commande wg / wg-quick a retourné un code non nul."""

    def __init__(
        self,
        cmd: Sequence[str],
        returncode: int,
        stderr: str = "",
        message: Optional[str] = None,
    ):
        self.cmd = list(cmd)
        self.returncode = returncode
        self.stderr = stderr.strip()
        if message is None:
            message = f"Command failed ({returncode}): {' '.join(self.cmd)}"
            if self.stderr:
                message += f"\n{self.stderr}"
        super().__init__(message)


class KernelSupportError(DaemonError):
    def __init__(self, interface: str, cause: DaemonError):
        super().__init__(
            cause.cmd,
            cause.returncode,
            cause.stderr,
            message=(
                f'WireGuard exited with the error: Cannot find device "{interface}"\n'
                "This usually means that your host's kernel does not support WireGuard!"
            ),
        )
