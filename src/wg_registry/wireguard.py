# src/wg_registry/wireguard.py
"""
Pilote du démon WireGuard.

Toutes les interactions avec wg(8) / wg-quick(8) passent par cette classe,
injectée dans le registre pour pouvoir être remplacée dans les tests.
"""
from __future__ import annotations
import asyncio
import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import List, Optional, Sequence

from .errors import DaemonError

logger = logging.getLogger(__name__)


# ---------- Exécution ----------

async def _run(cmd: Sequence[str], input: Optional[str] = None, log: bool = True) -> str:
    if log:
        logger.debug("$ %s", " ".join(cmd))

    proc = await asyncio.create_subprocess_exec(
        *cmd,
        stdin=asyncio.subprocess.PIPE if input is not None else None,
        stdout=asyncio.subprocess.PIPE,
        stderr=asyncio.subprocess.PIPE,
    )
    stdout, stderr = await proc.communicate(
        input.encode() if input is not None else None
    )

    if proc.returncode != 0:
        raise DaemonError(cmd, proc.returncode, stderr.decode(errors="replace"))

    return stdout.decode().strip()


# ---------- Dump ----------

@dataclass
class DumpEntry:
    public_key: str
    preshared_key: str
    endpoint: str
    allowed_ips: str
    latest_handshake_at: Optional[datetime]
    transfer_rx: int
    transfer_tx: int
    persistent_keepalive: str


def parse_dump(text: str) -> List[DumpEntry]:
    """
    Parse la sortie de `wg show <iface> dump`.
    La première ligne décrit l'interface elle-même, elle est ignorée.
    """
    entries = []
    for line in text.strip().split("\n")[1:]:
        fields = line.split("\t")
        if len(fields) < 8:
            continue
        (
            public_key,
            preshared_key,
            endpoint,
            allowed_ips,
            latest_handshake,
            transfer_rx,
            transfer_tx,
            persistent_keepalive,
        ) = fields[:8]

        handshake = None
        if latest_handshake != "0":
            handshake = datetime.fromtimestamp(int(latest_handshake), tz=timezone.utc)

        entries.append(DumpEntry(
            public_key=public_key,
            preshared_key=preshared_key,
            endpoint=endpoint,
            allowed_ips=allowed_ips,
            latest_handshake_at=handshake,
            transfer_rx=int(transfer_rx),
            transfer_tx=int(transfer_tx),
            persistent_keepalive=persistent_keepalive,
        ))
    return entries


# ---------- Pilote ----------

class WireGuardDriver:
    """
    Surface de commandes consommée par le registre.
    """

    def __init__(self, interface: str = "wg0"):
        self.interface = interface

    # Clés

    async def generate_private_key(self) -> str:
        return await _run(["wg", "genkey"])

    async def derive_public_key(self, private_key: str) -> str:
        # La clé privée passe par stdin, jamais sur la ligne de commande
        return await _run(["wg", "pubkey"], input=private_key + "\n")

    async def generate_preshared_key(self) -> str:
        return await _run(["wg", "genpsk"])

    # Interface

    async def up(self) -> None:
        logger.info("Bringing up %s", self.interface)
        await _run(["wg-quick", "up", self.interface])

    async def down(self) -> None:
        logger.info("Bringing down %s", self.interface)
        await _run(["wg-quick", "down", self.interface])

    async def sync(self) -> None:
        # Équivalent de `wg syncconf wg0 <(wg-quick strip wg0)`
        stripped = await _run(["wg-quick", "strip", self.interface], log=False)
        await _run(["wg", "syncconf", self.interface, "/dev/stdin"], input=stripped + "\n")

    async def dump(self) -> str:
        return await _run(["wg", "show", self.interface, "dump"], log=False)
