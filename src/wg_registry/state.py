# src/wg_registry/state.py
from __future__ import annotations
import json
import logging
import os
from datetime import datetime, timezone
from pathlib import Path

from .models import Peer, ServerState, State

logger = logging.getLogger(__name__)

STATE_FILE_MODE = 0o660


def _dt_to_str(value: datetime) -> str:
    return value.isoformat()


def _str_to_dt(value: str) -> datetime:
    if not isinstance(value, str):
        raise ValueError(f"Invalid timestamp: {value!r}")
    dt = datetime.fromisoformat(value.replace("Z", "+00:00"))
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt


def peer_to_dict(p: Peer) -> dict:
    data = {
        "id": p.id,
        "name": p.name,
        "address": p.address,
        "publicKey": p.public_key,
        "createdAt": _dt_to_str(p.created_at),
        "updatedAt": _dt_to_str(p.updated_at),
        "enabled": p.enabled,
    }
    # Clés optionnelles : absentes plutôt que null, comme les anciennes versions
    if p.private_key is not None:
        data["privateKey"] = p.private_key
    if p.preshared_key is not None:
        data["preSharedKey"] = p.preshared_key
    return data


def dict_to_peer(peer_id: str, data: dict) -> Peer:
    if not isinstance(data, dict):
        raise ValueError(f"Invalid client entry {peer_id!r}: expected an object")
    return Peer(
        id=data.get("id", peer_id),
        name=data["name"],
        address=data["address"],
        public_key=data["publicKey"],
        private_key=data.get("privateKey"),
        preshared_key=data.get("preSharedKey"),
        enabled=data.get("enabled", True),
        created_at=_str_to_dt(data["createdAt"]),
        updated_at=_str_to_dt(data["updatedAt"]),
    )


def state_to_dict(state: State) -> dict:
    return {
        "server": {
            "privateKey": state.server.private_key,
            "publicKey": state.server.public_key,
            "address": state.server.address,
        },
        "clients": {
            peer_id: peer_to_dict(p)
            for peer_id, p in state.peers.items()
        },
    }


def dict_to_state(data: dict) -> State:
    if not isinstance(data, dict):
        raise ValueError("Invalid state document: expected an object")
    server_data = data["server"]
    if not isinstance(server_data, dict):
        raise ValueError("Invalid state document: 'server' must be an object")
    server = ServerState(
        private_key=server_data["privateKey"],
        public_key=server_data["publicKey"],
        address=server_data["address"],
    )

    clients = data.get("clients", {})
    if not isinstance(clients, dict):
        raise ValueError("Invalid state document: 'clients' must be an object")

    peers = {}
    for peer_id, p in clients.items():
        peers[peer_id] = dict_to_peer(peer_id, p)

    return State(server=server, peers=peers)


def load_state(path: Path) -> State:
    with path.open("r", encoding="utf-8") as f:
        data = json.load(f)
    return dict_to_state(data)


def save_state(state: State, path: Path) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    data = state_to_dict(state)
    with path.open("w", encoding="utf-8") as f:
        json.dump(data, f, indent=2)
    os.chmod(path, STATE_FILE_MODE)
    logger.debug("State written to %s", path)
