"""Configuration settings for the upload server."""
import argparse
import tomllib
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

# Defaults used when the config file leaves a key out
DEFAULT_CONFIG_FILE = "./config.toml"
LISTEN_HOST = "127.0.0.1"
LISTEN_PORT = 5050
STORE_DIR = "./upload"
UPLOAD_SUBDIR = "upload"
LOG_LEVEL = "INFO"


@dataclass(frozen=True)
class Config:
    secret: bytes
    store_dir: Path
    upload_subdir: str = UPLOAD_SUBDIR
    listen_host: str = LISTEN_HOST
    listen_port: int = LISTEN_PORT
    unix_socket: Optional[str] = None
    log_level: str = LOG_LEVEL

    def __post_init__(self):
        if not self.secret:
            raise ValueError("Secret must not be empty")
        # Frozen dataclass: normalize through object.__setattr__
        object.__setattr__(self, "store_dir", Path(self.store_dir).resolve())
        object.__setattr__(self, "upload_subdir", self.upload_subdir.strip("/"))
        object.__setattr__(self, "log_level", self.log_level.upper())

    @classmethod
    def from_toml(cls, path: str) -> 'Config':
        """Read the configuration from a TOML file.

        Recognised keys: ``secret`` (required), ``store_dir``, ``upload_subdir``,
        ``listen_host``, ``listen_port``, ``unix_socket`` and ``log_level``.
        """
        with open(path, "rb") as f:
            data = tomllib.load(f)

        if "secret" not in data:
            raise ValueError(f"Config file {path} does not define a secret")

        return cls(
            secret=str(data["secret"]).encode("utf-8"),
            store_dir=Path(data.get("store_dir", STORE_DIR)),
            upload_subdir=data.get("upload_subdir", UPLOAD_SUBDIR),
            listen_host=data.get("listen_host", LISTEN_HOST),
            listen_port=int(data.get("listen_port", LISTEN_PORT)),
            unix_socket=data.get("unix_socket"),
            log_level=data.get("log_level", LOG_LEVEL),
        )

    @classmethod
    def from_args(cls, argv=None) -> 'Config':
        """Create Config from command line arguments."""
        parser = argparse.ArgumentParser(description='HTTP upload server for XMPP external upload')
        parser.add_argument('--config', default=DEFAULT_CONFIG_FILE,
                            help='Path to configuration file "config.toml"')
        args = parser.parse_args(argv)
        return cls.from_toml(args.config)
