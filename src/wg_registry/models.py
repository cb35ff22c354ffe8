# src/wg_registry/models.py
from __future__ import annotations
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Dict, Optional


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass
class ServerState:
    private_key: str
    public_key: str
    address: str               # IP du serveur dans le tunnel, ex "10.8.0.1"


@dataclass
class Peer:
    id: str
    name: str
    address: str               # ex "10.8.0.2", sans préfixe
    public_key: str
    private_key: Optional[str] = None   # None : le client garde sa propre clé
    preshared_key: Optional[str] = None
    enabled: bool = True
    created_at: datetime = field(default_factory=utcnow)
    updated_at: datetime = field(default_factory=utcnow)

    def touch(self) -> None:
        self.updated_at = utcnow()


@dataclass
class State:
    server: ServerState
    peers: Dict[str, Peer] = field(default_factory=dict)


@dataclass
class PeerStatus:
    """
    Vue enrichie d'un peer au moment de la lecture.
    Les champs live viennent de `wg show <iface> dump` et ne sont jamais persistés.
    """
    peer: Peer
    latest_handshake_at: Optional[datetime] = None
    transfer_rx: Optional[int] = None
    transfer_tx: Optional[int] = None
    persistent_keepalive: Optional[str] = None

    @property
    def downloadable_config(self) -> bool:
        return self.peer.private_key is not None

    def to_dict(self) -> dict:
        p = self.peer
        return {
            "id": p.id,
            "name": p.name,
            "enabled": p.enabled,
            "address": p.address,
            "publicKey": p.public_key,
            "createdAt": p.created_at.isoformat(),
            "updatedAt": p.updated_at.isoformat(),
            "downloadableConfig": self.downloadable_config,
            "persistentKeepalive": self.persistent_keepalive,
            "latestHandshakeAt": (
                self.latest_handshake_at.isoformat() if self.latest_handshake_at else None
            ),
            "transferRx": self.transfer_rx,
            "transferTx": self.transfer_tx,
        }
