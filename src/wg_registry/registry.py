# src/wg_registry/registry.py
"""
Registre du tunnel WireGuard.

Persiste les peers dans `<path>/<iface>.json`, régénère `<path>/<iface>.conf`
à chaque modification et resynchronise l'interface en cours d'exécution.
"""
from __future__ import annotations
import asyncio
import logging
import os
import uuid
from typing import List, Optional

from . import ipam
from .config import Settings
from .config_builder import render_client_conf, render_qr_svg, render_server_conf
from .errors import (
    ConfigurationError,
    DaemonError,
    InvalidAddress,
    KernelSupportError,
    MissingName,
    PeerNotFound,
)
from .models import Peer, PeerStatus, ServerState, State, utcnow
from .state import load_state, save_state
from .wireguard import WireGuardDriver, parse_dump

logger = logging.getLogger(__name__)

CONF_FILE_MODE = 0o600


class TunnelRegistry:

    def __init__(self, settings: Settings, driver: Optional[WireGuardDriver] = None):
        self.settings = settings
        self.driver = driver or WireGuardDriver(settings.interface)
        self.network = ipam.parse_network(settings.default_address)

        self._state_task: Optional[asyncio.Task] = None
        self._lock = asyncio.Lock()

    # ---------- Chargement ----------

    async def get_state(self) -> State:
        """
        Charge (ou initialise) l'état une seule fois. Les appelants concurrents
        partagent la même tâche ; un échec n'est pas mis en cache.
        """
        if self._state_task is None:
            self._state_task = asyncio.ensure_future(self._load())
            self._state_task.add_done_callback(self._forget_failed_load)
        return await asyncio.shield(self._state_task)

    def _forget_failed_load(self, task: asyncio.Task) -> None:
        if task.cancelled() or task.exception() is not None:
            self._state_task = None

    async def _load(self) -> State:
        if not self.settings.host:
            raise ConfigurationError("WG_HOST Environment Variable Not Set!")

        logger.info("Loading configuration...")
        try:
            state = load_state(self.settings.state_file)
            logger.info("Configuration loaded.")
        except (OSError, ValueError, KeyError, TypeError) as e:
            logger.info("No usable configuration (%s), generating a new one.", e)
            state = await self._bootstrap()

        self.persist(state)

        try:
            await self.driver.down()
        except DaemonError as e:
            logger.debug("Interface was not up: %s", e)

        try:
            await self.driver.up()
        except DaemonError as e:
            if f'Cannot find device "{self.settings.interface}"' in str(e):
                raise KernelSupportError(self.settings.interface, e) from e
            raise

        await self.sync()
        return state

    async def _bootstrap(self) -> State:
        private_key = await self.driver.generate_private_key()
        public_key = await self.driver.derive_public_key(private_key)

        server = ServerState(
            private_key=private_key,
            public_key=public_key,
            address=ipam.server_address(self.settings.default_address),
        )
        logger.info("Configuration generated.")
        return State(server=server, peers={})

    # ---------- Persistance ----------

    def persist(self, state: State) -> None:
        logger.info("Config saving...")
        save_state(state, self.settings.state_file)

        conf_path = self.settings.conf_file
        conf = render_server_conf(state, self.settings, self.network)
        with conf_path.open("w", encoding="utf-8") as f:
            f.write(conf)
        os.chmod(conf_path, CONF_FILE_MODE)
        logger.info("Config saved.")

    async def sync(self) -> None:
        logger.info("Config syncing...")
        await self.driver.sync()
        logger.info("Config synced.")

    async def save(self) -> None:
        state = await self.get_state()
        self.persist(state)
        await self.sync()

    # ---------- Lecture ----------

    async def list_peers(self) -> List[PeerStatus]:
        state = await self.get_state()
        peers = [PeerStatus(peer=p) for p in state.peers.values()]
        by_key = {s.peer.public_key: s for s in peers}

        for entry in parse_dump(await self.driver.dump()):
            status = by_key.get(entry.public_key)
            if status is None:
                continue
            status.latest_handshake_at = entry.latest_handshake_at
            status.transfer_rx = entry.transfer_rx
            status.transfer_tx = entry.transfer_tx
            status.persistent_keepalive = entry.persistent_keepalive

        return peers

    async def get_peer(self, peer_id: str) -> Peer:
        state = await self.get_state()
        peer = state.peers.get(peer_id)
        if peer is None:
            raise PeerNotFound(peer_id)
        return peer

    async def render_peer_config(self, peer_id: str) -> str:
        state = await self.get_state()
        peer = await self.get_peer(peer_id)
        return render_client_conf(state, peer, self.settings, self.network)

    async def render_peer_qr_code(self, peer_id: str) -> str:
        conf = await self.render_peer_config(peer_id)
        return render_qr_svg(conf, width=self.settings.qr_width)

    # ---------- Écriture ----------

    async def create_peer(self, name: str) -> Peer:
        if not name or not name.strip():
            raise MissingName()

        state = await self.get_state()

        private_key = await self.driver.generate_private_key()
        public_key = await self.driver.derive_public_key(private_key)
        preshared_key = await self.driver.generate_preshared_key()

        async with self._lock:
            address = ipam.allocate_address(state, self.settings.default_address)
            now = utcnow()
            peer = Peer(
                id=str(uuid.uuid4()),
                name=name,
                address=address,
                public_key=public_key,
                private_key=private_key,
                preshared_key=preshared_key,
                enabled=True,
                created_at=now,
                updated_at=now,
            )
            state.peers[peer.id] = peer
            await self.save()

        logger.info("Peer created: %s (%s) -> %s", peer.name, peer.id, peer.address)
        return peer

    async def delete_peer(self, peer_id: str) -> None:
        state = await self.get_state()
        async with self._lock:
            if peer_id in state.peers:
                del state.peers[peer_id]
                await self.save()
                logger.info("Peer deleted: %s", peer_id)

    async def enable_peer(self, peer_id: str) -> None:
        async with self._lock:
            peer = await self.get_peer(peer_id)
            peer.enabled = True
            peer.touch()
            await self.save()

    async def disable_peer(self, peer_id: str) -> None:
        async with self._lock:
            peer = await self.get_peer(peer_id)
            peer.enabled = False
            peer.touch()
            await self.save()

    async def rename_peer(self, peer_id: str, name: str) -> None:
        async with self._lock:
            peer = await self.get_peer(peer_id)
            peer.name = name
            peer.touch()
            await self.save()

    async def update_peer_address(self, peer_id: str, address: str) -> None:
        async with self._lock:
            peer = await self.get_peer(peer_id)
            if not ipam.is_valid_ipv4(address):
                raise InvalidAddress(address)
            peer.address = address
            peer.touch()
            await self.save()

    # ---------- Arrêt ----------

    async def shutdown(self) -> None:
        try:
            await self.driver.down()
        except DaemonError as e:
            logger.debug("Ignoring shutdown failure: %s", e)
