import argparse
import asyncio
import json
import logging
import sys
from pathlib import Path

from .config import get_settings
from .errors import ConfigurationError, DaemonError, ServerError
from .registry import TunnelRegistry


def _fmt_bytes(n):
    if n is None:
        return "-"
    for unit in ("B", "KiB", "MiB", "GiB"):
        if n < 1024:
            return f"{n:.0f} {unit}" if unit == "B" else f"{n:.1f} {unit}"
        n /= 1024
    return f"{n:.1f} TiB"


# ---------------------------------------------------
# Commande : up (chargement / initialisation)
# ---------------------------------------------------

async def cmd_up(registry, args):
    state = await registry.get_state()
    print(f"[+] Interface {registry.settings.interface} up.")
    print(f"[+] Adresse    : {state.server.address}")
    print(f"[+] Clé publique : {state.server.public_key}")


async def cmd_down(registry, args):
    await registry.shutdown()
    print(f"[+] Interface {registry.settings.interface} down.")


# ---------------------------------------------------
# Commande : list-peers
# ---------------------------------------------------

async def cmd_list(registry, args):
    peers = await registry.list_peers()

    if args.json:
        print(json.dumps([s.to_dict() for s in peers], indent=2))
        return

    if not peers:
        print("Aucun peer.")
        return

    for s in peers:
        p = s.peer
        flag = "on " if p.enabled else "off"
        handshake = s.latest_handshake_at.isoformat() if s.latest_handshake_at else "never"
        print(
            f"- [{flag}] {p.name} ({p.address}) id={p.id} "
            f"handshake={handshake} rx={_fmt_bytes(s.transfer_rx)} tx={_fmt_bytes(s.transfer_tx)}"
        )


# ---------------------------------------------------
# Commandes sur les peers
# ---------------------------------------------------

async def cmd_add_peer(registry, args):
    peer = await registry.create_peer(args.name)
    print(f"[+] Peer ajouté : {peer.name} ({peer.address})")
    print(f"[+] id : {peer.id}")


async def cmd_remove_peer(registry, args):
    await registry.delete_peer(args.id)
    print(f"[OK] Peer supprimé : {args.id}")


async def cmd_enable_peer(registry, args):
    await registry.enable_peer(args.id)
    print(f"[OK] Peer activé : {args.id}")


async def cmd_disable_peer(registry, args):
    await registry.disable_peer(args.id)
    print(f"[OK] Peer désactivé : {args.id}")


async def cmd_rename_peer(registry, args):
    await registry.rename_peer(args.id, args.name)
    print(f"[OK] Peer renommé : {args.name}")


async def cmd_set_address(registry, args):
    await registry.update_peer_address(args.id, args.address)
    print(f"[OK] Nouvelle adresse : {args.address}")


# ---------------------------------------------------
# Export : config / QR code
# ---------------------------------------------------

async def cmd_export_peer(registry, args):
    conf = await registry.render_peer_config(args.id)

    if args.output:
        path = Path(args.output)
        path.write_text(conf)
        path.chmod(0o600)
        print(f"[OK] Config générée : {path}")
    else:
        print(conf)


async def cmd_generate_qr(registry, args):
    svg = await registry.render_peer_qr_code(args.id)

    path = Path(args.output or f"{args.id}.svg")
    path.write_text(svg)
    print(f"[OK] QR code généré : {path}")


# ---------------------------------------------------
# CLI / Parser
# ---------------------------------------------------

def build_parser():
    parser = argparse.ArgumentParser(prog="wg-registry")
    parser.add_argument("-v", "--verbose", action="store_true")
    sub = parser.add_subparsers(dest="cmd")

    p_up = sub.add_parser("up")
    p_up.set_defaults(func=cmd_up)

    p_down = sub.add_parser("down")
    p_down.set_defaults(func=cmd_down)

    p_list = sub.add_parser("list-peers")
    p_list.add_argument("--json", action="store_true")
    p_list.set_defaults(func=cmd_list)

    p_add = sub.add_parser("add-peer")
    p_add.add_argument("name")
    p_add.set_defaults(func=cmd_add_peer)

    p_rm = sub.add_parser("remove-peer")
    p_rm.add_argument("id")
    p_rm.set_defaults(func=cmd_remove_peer)

    p_enable = sub.add_parser("enable-peer")
    p_enable.add_argument("id")
    p_enable.set_defaults(func=cmd_enable_peer)

    p_disable = sub.add_parser("disable-peer")
    p_disable.add_argument("id")
    p_disable.set_defaults(func=cmd_disable_peer)

    p_rename = sub.add_parser("rename-peer")
    p_rename.add_argument("id")
    p_rename.add_argument("name")
    p_rename.set_defaults(func=cmd_rename_peer)

    p_addr = sub.add_parser("set-address")
    p_addr.add_argument("id")
    p_addr.add_argument("address")
    p_addr.set_defaults(func=cmd_set_address)

    p_export = sub.add_parser("export-peer")
    p_export.add_argument("id")
    p_export.add_argument("--output")
    p_export.set_defaults(func=cmd_export_peer)

    p_qr = sub.add_parser("generate-qr")
    p_qr.add_argument("id")
    p_qr.add_argument("--output")
    p_qr.set_defaults(func=cmd_generate_qr)

    return parser


def main(argv=None):
    parser = build_parser()
    args = parser.parse_args(argv)
    if not hasattr(args, "func"):
        parser.print_help()
        return 0

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    registry = TunnelRegistry(get_settings())
    try:
        asyncio.run(args.func(registry, args))
    except (ServerError, ConfigurationError, DaemonError) as e:
        print(f"[ERROR] {e}", file=sys.stderr)
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
