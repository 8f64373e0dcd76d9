"""Local HTTP listener that captures the OAuth redirect.

The listener binds 127.0.0.1 on a free port, serves from a background thread,
and hands exactly one AuthorizationOutcome to the waiting login flow through
a OneShot slot. Requests that arrive after the outcome is set are answered
but never delivered.
"""

import random
import socket
import threading
from dataclasses import dataclass, field
from http.server import BaseHTTPRequestHandler, HTTPServer
from urllib.parse import parse_qs, urlparse

from errors import ListenerBindFailed
from log_setup import get_logger

PORT_RANGE = (4000, 8000)
PORT_ATTEMPTS = 50

CODE = "code"
ERROR = "error"
STATE_MISMATCH = "state_mismatch"

_PAGE = (
    "<!DOCTYPE html><html><head><meta charset=\"utf-8\"><title>sp2ytm</title></head>"
    "<body><h1>{title}</h1><p>{message}</p></body></html>"
)

log = get_logger("auth")


@dataclass(frozen=True)
class AuthorizationOutcome:
    """Result of the single OAuth redirect: a code, a provider error, or a state mismatch."""

    kind: str
    value: str = field(repr=False, default="")

    @classmethod
    def code(cls, code):
        return cls(CODE, code)

    @classmethod
    def error(cls, error):
        return cls(ERROR, error)

    @classmethod
    def state_mismatch(cls):
        return cls(STATE_MISMATCH)


class OneShot:
    """Single-use rendezvous: the first set() wins, later ones are rejected."""

    def __init__(self):
        self._lock = threading.Lock()
        self._event = threading.Event()
        self._value = None

    def set(self, value):
        with self._lock:
            if self._event.is_set():
                return False
            self._value = value
            self._event.set()
            return True

    def is_set(self):
        return self._event.is_set()

    def wait(self, timeout=None):
        """Block until a value is set; returns None if the timeout expires first."""
        if not self._event.wait(timeout):
            return None
        return self._value


def classify_callback(params, expected_state):
    """Turn parsed redirect query parameters into an AuthorizationOutcome.

    An error parameter wins over everything else, including a code.
    """
    error = (params.get("error") or [None])[0]
    if error is not None:
        return AuthorizationOutcome.error(error or "unknown_error")

    state = (params.get("state") or [None])[0]
    if state is None or state != expected_state:
        return AuthorizationOutcome.state_mismatch()

    code = (params.get("code") or [None])[0]
    if not code:
        return AuthorizationOutcome.error("missing_code")

    return AuthorizationOutcome.code(code)


def find_free_port(low=PORT_RANGE[0], high=PORT_RANGE[1], attempts=PORT_ATTEMPTS, host="127.0.0.1"):
    """Probe random ports in [low, high) until one binds."""
    for _ in range(attempts):
        port = random.randrange(low, high)
        with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as sock:
            try:
                sock.bind((host, port))
            except OSError:
                log.debug(f"Port {port} is in use, trying another")
                continue
        return port
    raise ListenerBindFailed(f"No free port found in range {low}-{high} after {attempts} attempts")


class _CallbackServer(HTTPServer):
    def __init__(self, address, expected_state, callback_path, outcome):
        self.expected_state = expected_state
        self.callback_path = callback_path
        self.outcome = outcome
        super().__init__(address, _CallbackHandler)


class _CallbackHandler(BaseHTTPRequestHandler):
    server_version = "sp2ytm"

    def do_GET(self):
        parsed = urlparse(self.path)
        if parsed.path != self.server.callback_path:
            self._respond(404, "Not found", "Nothing to see here.")
            return

        outcome = classify_callback(
            parse_qs(parsed.query, keep_blank_values=True), self.server.expected_state,
        )
        if not self.server.outcome.set(outcome):
            self._respond(200, "Already completed", "Login was already handled. You may close this tab.")
            return

        if outcome.kind == CODE:
            log.debug("Received authorization code on callback listener")
            self._respond(200, "Login complete", "You may close this tab and return to the terminal.")
        elif outcome.kind == STATE_MISMATCH:
            log.debug("Callback state did not match the login session")
            self._respond(400, "Login failed", "State does not match. Return to the terminal and try again.")
        else:
            log.debug(f"Callback carried an error: {outcome.value}")
            self._respond(
                400, "Login failed", f"Google reported an error ({outcome.value}). Return to the terminal.",
            )

    def _respond(self, status, title, message):
        body = _PAGE.format(title=title, message=message).encode("utf-8")
        self.send_response(status)
        self.send_header("Content-Type", "text/html; charset=utf-8")
        self.send_header("Content-Length", str(len(body)))
        self.end_headers()
        self.wfile.write(body)

    def log_request(self, code="-", size="-"):
        # Path only: the query string carries the code and state.
        path = urlparse(getattr(self, "path", "")).path
        log.debug(f"callback {self.address_string()} {self.command} {path} -> {getattr(code, 'value', code)}")

    def log_message(self, format, *args):
        # Only reached through log_error, whose arguments can echo the raw request line.
        status = args[0] if args else "-"
        log.debug(f"callback {self.address_string()} error {getattr(status, 'value', status)}")


class CallbackListener:
    """Background HTTP server waiting for one OAuth redirect on 127.0.0.1:<port>."""

    def __init__(self, port, expected_state, host="127.0.0.1", path="/"):
        self.port = port
        self.host = host
        self.path = path
        self.expected_state = expected_state
        self.outcome = OneShot()

        self._server = None
        self._thread = None
        self._ready = threading.Event()
        self._bind_error = None

    @property
    def url(self):
        return f"http://{self.host}:{self.port}{self.path}"

    def _serve(self):
        try:
            server = _CallbackServer((self.host, self.port), self.expected_state, self.path, self.outcome)
        except OSError as e:
            self._bind_error = e
            self._ready.set()
            return

        self._server = server
        self._ready.set()
        server.serve_forever()

    def start(self):
        """Start serving; returns once the socket is bound and listening."""
        if self._thread is not None:
            raise RuntimeError("Callback listener already started")

        self._thread = threading.Thread(target=self._serve, name=f"oauth-callback-{self.port}", daemon=True)
        self._thread.start()
        self._ready.wait()

        if self._bind_error is not None:
            self._thread.join()
            raise ListenerBindFailed(f"Could not bind {self.host}:{self.port}: {self._bind_error}") from self._bind_error

        log.debug(f"Callback listener accepting connections on {self.url}")
        return self

    def wait(self, timeout=None):
        return self.outcome.wait(timeout)

    def stop(self):
        """Shut the server down and release the port. Safe to call more than once."""
        server, self._server = self._server, None
        if server is None:
            return
        server.shutdown()
        server.server_close()
        self._thread.join()
        log.debug(f"Callback listener on port {self.port} stopped")

    def __enter__(self):
        return self.start()

    def __exit__(self, exc_type, exc, tb):
        self.stop()
