"""Google OAuth2 login (Authorization Code + PKCE) with a local redirect listener.

Flow:
  1. generate a PKCE session and pick a free local port
  2. start the callback listener and wait until it is bound
  3. show the authorization URL to the user
  4. wait for the single redirect, then stop the listener
  5. exchange the code for an access token

Every failure is terminal for the attempt. PKCE values are single-use, so a
retry means a new GoogleOAuth instance.
"""

import enum
from urllib.parse import urlencode

import pkce
from errors import CallbackError, NetworkError, StateMismatch, TokenExchangeFailed
from log_setup import get_logger
from oauth_server import CODE, STATE_MISMATCH, CallbackListener, find_free_port

AUTH_URL = "https://accounts.google.com/o/oauth2/v2/auth"
TOKEN_URL = "https://oauth2.googleapis.com/token"
SCOPE = "https://www.googleapis.com/auth/youtube"

log = get_logger("auth")


class AuthState(enum.Enum):
    INIT = "init"
    AWAITING_CALLBACK = "awaiting_callback"
    EXCHANGING = "exchanging"
    COMPLETE = "complete"
    CALLBACK_ERROR = "callback_error"
    STATE_MISMATCH = "state_mismatch"
    EXCHANGE_FAILED = "exchange_failed"


def build_authorization_url(client_id, session):
    params = {
        "client_id": client_id,
        "redirect_uri": session.redirect_uri,
        "response_type": "code",
        "scope": SCOPE,
        "code_challenge": session.challenge,
        "code_challenge_method": "S256",
        "state": session.state,
    }
    return f"{AUTH_URL}?{urlencode(params)}"


class GoogleOAuth:
    """One authorization attempt against Google for the YouTube scope."""

    def __init__(self, credentials, http, *, listener_factory=CallbackListener, port_finder=find_free_port):
        self.credentials = credentials
        self.http = http
        self.listener_factory = listener_factory
        self.port_finder = port_finder
        self.state = AuthState.INIT

    def authorize(self, present_url, timeout=None):
        """Run the whole flow and return the access token.

        present_url is called with the authorization URL once the listener is
        accepting connections. timeout bounds the wait for the browser
        redirect; None waits forever.
        """
        if self.state is not AuthState.INIT:
            raise RuntimeError(f"Authorization attempt already used (state: {self.state.value})")

        log.debug("Generating PKCE verifier, challenge and state for Google login")
        session = pkce.new_session(self.port_finder())

        listener = self.listener_factory(session.redirect_port, session.state)
        listener.start()
        try:
            present_url(build_authorization_url(self.credentials.client_id, session))

            self.state = AuthState.AWAITING_CALLBACK
            log.debug("Waiting for user to complete login flow")
            outcome = listener.wait(timeout)
        finally:
            listener.stop()

        if outcome is None:
            self.state = AuthState.CALLBACK_ERROR
            raise CallbackError(f"No login redirect received within {timeout} seconds")
        if outcome.kind == STATE_MISMATCH:
            self.state = AuthState.STATE_MISMATCH
            raise StateMismatch("Login redirect state does not match this session")
        if outcome.kind != CODE:
            self.state = AuthState.CALLBACK_ERROR
            raise CallbackError(f"Google login failed: {outcome.value}")

        log.debug("User has completed the login flow")
        self.state = AuthState.EXCHANGING
        try:
            token = self._exchange(outcome.value, session)
        except TokenExchangeFailed:
            self.state = AuthState.EXCHANGE_FAILED
            raise

        self.state = AuthState.COMPLETE
        return token

    def _exchange(self, code, session):
        log.debug("Exchanging received code for access token")
        payload = {
            "client_id": self.credentials.client_id,
            "client_secret": self.credentials.client_secret,
            "code": code,
            "code_verifier": session.verifier,
            "grant_type": "authorization_code",
            "redirect_uri": session.redirect_uri,
        }
        try:
            response = self.http.post_json(self.http.limits.youtube, TOKEN_URL, payload)
        except NetworkError as e:
            raise TokenExchangeFailed(f"Google token exchange failed: {e}") from e

        token = response.get("access_token") if isinstance(response, dict) else None
        if not token:
            raise TokenExchangeFailed("Google token response did not contain an access_token")
        return token
