# src/wg_registry/config.py
from __future__ import annotations
from functools import lru_cache
from pathlib import Path
from typing import Optional

from pydantic import model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_prefix="WG_", env_file=".env", extra="ignore")

    # Emplacement des fichiers <interface>.json / <interface>.conf
    path: Path = Path("/etc/wireguard")
    interface: str = "wg0"

    # Identité publique du serveur (obligatoire)
    host: str = ""
    port: int = 51820
    config_port: Optional[int] = None

    # Réseau du tunnel : le serveur prend le .1
    default_address: str = "10.8.0.0/24"

    # Valeurs poussées dans les configs clients
    default_dns: Optional[str] = "1.1.1.1"
    mtu: Optional[int] = None
    persistent_keepalive: int = 0
    allowed_ips: str = "0.0.0.0/0, ::/0"

    # Hooks wg-quick du serveur
    pre_up: str = ""
    post_up: str = ""
    pre_down: str = ""
    post_down: str = ""

    qr_width: int = 512

    @model_validator(mode="after")
    def _default_config_port(self) -> "Settings":
        if self.config_port is None:
            self.config_port = self.port
        return self

    @property
    def state_file(self) -> Path:
        return self.path / f"{self.interface}.json"

    @property
    def conf_file(self) -> Path:
        return self.path / f"{self.interface}.conf"


@lru_cache
def get_settings() -> Settings:
    return Settings()
