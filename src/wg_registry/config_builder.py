# src/wg_registry/config_builder.py
from __future__ import annotations
import io
import ipaddress

import qrcode
from qrcode.image.svg import SvgPathImage

from .config import Settings
from .models import Peer, State

PRIVATE_KEY_PLACEHOLDER = "REPLACE_ME"

SERVER_TEMPLATE = """
# Note: Do not edit this file directly.
# Your changes will be overwritten!

# Server
[Interface]
PrivateKey = {server_private_key}
Address = {server_ip}/{prefix}
ListenPort = {listen_port}
PreUp = {pre_up}
PostUp = {post_up}
PreDown = {pre_down}
PostDown = {post_down}
"""

PEER_TEMPLATE = """

# Client: {name} ({peer_id})
[Peer]
PublicKey = {public_key}
{psk_block}AllowedIPs = {client_ip}/32"""

CLIENT_TEMPLATE = """[Interface]
PrivateKey = {client_private_key}
Address = {client_ip}/{prefix}
{dns_block}{mtu_block}
[Peer]
PublicKey = {server_public_key}
{psk_block}AllowedIPs = {allowed_ips}
PersistentKeepalive = {keepalive}
Endpoint = {endpoint}:{port}
"""


def _psk_block(peer: Peer) -> str:
    return f"PresharedKey = {peer.preshared_key}\n" if peer.preshared_key else ""


def render_server_conf(state: State, settings: Settings, network: ipaddress.IPv4Network) -> str:
    result = SERVER_TEMPLATE.format(
        server_private_key=state.server.private_key,
        server_ip=state.server.address,
        prefix=network.prefixlen,
        listen_port=settings.port,
        pre_up=settings.pre_up,
        post_up=settings.post_up,
        pre_down=settings.pre_down,
        post_down=settings.post_down,
    )

    for peer_id, p in state.peers.items():
        if not p.enabled:
            continue
        result += PEER_TEMPLATE.format(
            name=p.name,
            peer_id=peer_id,
            public_key=p.public_key,
            psk_block=_psk_block(p),
            client_ip=p.address,
        )

    return result


def render_client_conf(
    state: State,
    peer: Peer,
    settings: Settings,
    network: ipaddress.IPv4Network,
) -> str:
    dns_block = f"DNS = {settings.default_dns}\n" if settings.default_dns else ""
    mtu_block = f"MTU = {settings.mtu}\n" if settings.mtu else ""

    return CLIENT_TEMPLATE.format(
        client_private_key=peer.private_key or PRIVATE_KEY_PLACEHOLDER,
        client_ip=peer.address,
        prefix=network.prefixlen,
        dns_block=dns_block,
        mtu_block=mtu_block,
        server_public_key=state.server.public_key,
        psk_block=_psk_block(peer),
        allowed_ips=settings.allowed_ips,
        keepalive=settings.persistent_keepalive,
        endpoint=settings.host,
        port=settings.config_port,
    )


def render_qr_svg(text: str, width: int = 512) -> str:
    img = qrcode.make(text, image_factory=SvgPathImage)

    # qrcode dimensionne en mm, on force une largeur fixe en pixels
    svg = img.get_image()
    svg.set("width", str(width))
    svg.set("height", str(width))

    buf = io.BytesIO()
    img.save(buf)
    return buf.getvalue().decode("utf-8")
