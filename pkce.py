"""PKCE (RFC 7636) verifier/challenge generation for the Google login."""

import base64
import hashlib
import secrets
import string
from dataclasses import dataclass, field

VERIFIER_LENGTH = 96
STATE_LENGTH = 32
_ALPHANUMERIC = string.ascii_letters + string.digits


def _random_alphanumeric(length):
    return "".join(secrets.choice(_ALPHANUMERIC) for _ in range(length))


def code_challenge_from_verifier(verifier):
    """Return base64(SHA-256(verifier)) with the '=' padding stripped."""
    digest = hashlib.sha256(verifier.encode("utf-8")).digest()
    return base64.b64encode(digest).decode("ascii").rstrip("=")


def generate_pkce_pair():
    """Return (verifier, challenge).

    The challenge travels in a query string where '+' and '/' are not wanted,
    so verifiers whose challenge contains them are thrown away and regenerated.
    """
    while True:
        verifier = _random_alphanumeric(VERIFIER_LENGTH)
        challenge = code_challenge_from_verifier(verifier)
        if "+" in challenge or "/" in challenge:
            continue
        return verifier, challenge


def generate_state():
    return _random_alphanumeric(STATE_LENGTH)


@dataclass(frozen=True)
class PkceSession:
    """Single-use values for one authorization attempt.

    verifier and state are secrets: they are excluded from repr and must not be logged.
    """

    verifier: str = field(repr=False)
    challenge: str
    state: str = field(repr=False)
    redirect_port: int

    @property
    def redirect_uri(self):
        return f"http://localhost:{self.redirect_port}"


def new_session(redirect_port):
    verifier, challenge = generate_pkce_pair()
    return PkceSession(
        verifier=verifier,
        challenge=challenge,
        state=generate_state(),
        redirect_port=redirect_port,
    )
