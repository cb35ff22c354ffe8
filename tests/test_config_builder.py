# tests/test_config_builder.py
from datetime import datetime, timezone

from wg_registry.config import Settings
from wg_registry.config_builder import render_client_conf, render_qr_svg, render_server_conf
from wg_registry.ipam import parse_network
from wg_registry.models import Peer, ServerState, State


NET = parse_network("10.8.0.0/24")


def _settings(**kwargs):
    values = dict(host="vpn.example.com", port=51820, default_dns="1.1.1.1", _env_file=None)
    values.update(kwargs)
    return Settings(**values)


def _state():
    ts = datetime(2024, 1, 1, tzinfo=timezone.utc)
    return State(
        server=ServerState(private_key="server-sk", public_key="server-pk", address="10.8.0.1"),
        peers={
            "a": Peer(id="a", name="laptop", address="10.8.0.2", public_key="pa",
                      private_key="ska", preshared_key="psk-a", created_at=ts, updated_at=ts),
            "b": Peer(id="b", name="phone", address="10.8.0.3", public_key="pb",
                      enabled=False, created_at=ts, updated_at=ts),
            "c": Peer(id="c", name="router", address="10.8.0.4", public_key="pc",
                      created_at=ts, updated_at=ts),
        },
    )


def test_server_conf():
    conf = render_server_conf(_state(), _settings(post_up="echo up"), NET)

    assert "PrivateKey = server-sk" in conf
    assert "Address = 10.8.0.1/24" in conf
    assert "ListenPort = 51820" in conf
    assert "PostUp = echo up" in conf
    assert "PreDown = " in conf
    assert "# Client: laptop (a)" in conf
    assert "PresharedKey = psk-a\nAllowedIPs = 10.8.0.2/32" in conf
    assert "PublicKey = pc\nAllowedIPs = 10.8.0.4/32" in conf
    assert conf.count("[Peer]") == 2
    assert "pb" not in conf


def test_client_conf():
    state = _state()
    conf = render_client_conf(state, state.peers["a"], _settings(mtu=1420, persistent_keepalive=25), NET)

    assert conf.count("[Interface]") == 1
    assert conf.count("[Peer]") == 1
    assert "PrivateKey = ska" in conf
    assert "Address = 10.8.0.2/24" in conf
    assert "DNS = 1.1.1.1" in conf
    assert "MTU = 1420" in conf
    assert "PublicKey = server-pk" in conf
    assert "PresharedKey = psk-a" in conf
    assert "AllowedIPs = 0.0.0.0/0, ::/0" in conf
    assert "PersistentKeepalive = 25" in conf
    assert "Endpoint = vpn.example.com:51820" in conf


def test_client_conf_optional_directives():
    state = _state()
    conf = render_client_conf(state, state.peers["c"], _settings(default_dns=None, config_port=443), NET)

    assert "PrivateKey = REPLACE_ME" in conf
    assert "DNS" not in conf
    assert "MTU" not in conf
    assert "PresharedKey" not in conf
    assert "Endpoint = vpn.example.com:443" in conf


def test_qr_svg_width():
    svg = render_qr_svg("[Interface]\nPrivateKey = x\n", width=300)

    assert "<svg" in svg
    assert 'width="300"' in svg
    assert 'height="300"' in svg
    assert "viewBox" in svg
