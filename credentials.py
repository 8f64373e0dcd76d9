"""App credentials for Spotify and Google.

Each value is taken from the first place that has it:
  1. command-line flag (--google-client-id, ...)
  2. environment variable (GOOGLE_CLIENT_ID, ...)
  3. config.py next to this file (copy config.example.py)
"""

import importlib
import os
from dataclasses import dataclass, field

CONFIG_MODULE = "config"

FIELDS = (
    "google_client_id",
    "google_client_secret",
    "spotify_client_id",
    "spotify_client_secret",
)


class MissingCredential(ValueError):
    def __init__(self, name):
        super().__init__(
            f"Missing required '{name}': pass --{name.replace('_', '-')}, "
            f"set {name.upper()}, or add it to config.py"
        )
        self.name = name


@dataclass(frozen=True)
class Credentials:
    client_id: str
    client_secret: str = field(repr=False)


@dataclass(frozen=True)
class AppCredentials:
    google: Credentials
    spotify: Credentials


def load_config_module(name=CONFIG_MODULE):
    """Return the user's config module, or None when there is no config.py."""
    try:
        return importlib.import_module(name)
    except ModuleNotFoundError as e:
        if e.name != name:
            raise
        return None


def resolve(name, cli_values, environ, config):
    value = cli_values.get(name)
    if not value:
        value = environ.get(name.upper())
    if not value and config is not None:
        value = getattr(config, name.upper(), None)
    if not value:
        raise MissingCredential(name)
    return str(value).strip()


def load_credentials(cli_values=None, environ=None, config=None):
    """Build AppCredentials from CLI values, the environment and config.py."""
    cli_values = cli_values or {}
    environ = os.environ if environ is None else environ
    if config is None:
        config = load_config_module()

    values = {name: resolve(name, cli_values, environ, config) for name in FIELDS}
    return AppCredentials(
        google=Credentials(values["google_client_id"], values["google_client_secret"]),
        spotify=Credentials(values["spotify_client_id"], values["spotify_client_secret"]),
    )
