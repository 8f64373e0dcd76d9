"""Spotify source: client-credentials login and full playlist fetch.

Only public playlist data is read, so the app token from the client-credentials
grant is enough; no user login and no token cache on disk.
"""

import re

import requests
import spotipy.oauth2
from spotipy.cache_handler import MemoryCacheHandler

from errors import AuthFlowError, NetworkError
from http_client import bearer
from log_setup import get_logger
from models import Playlist, Track
from paging import PagedFetcher

API_BASE = "https://api.spotify.com/v1"
PAGE_SIZE = 100

PLAYLIST_ID_RE = re.compile(r"playlist[/:]([A-Za-z0-9]+)")

log = get_logger("spotify")


def parse_playlist_id(url):
    """Extract the playlist id from an open.spotify.com URL or spotify:playlist: URI."""
    match = PLAYLIST_ID_RE.search(url or "")
    if not match:
        raise ValueError(f"Invalid Spotify playlist URL: {url!r}")
    return match.group(1)


def create_auth_manager(credentials, session):
    """Client-credentials auth manager sharing our session and caching only in memory."""
    return spotipy.oauth2.SpotifyClientCredentials(
        client_id=credentials.client_id,
        client_secret=credentials.client_secret,
        requests_session=session,
        cache_handler=MemoryCacheHandler(),
    )


def to_track(item):
    """Convert a playlist item to a Track; None for removed or local entries without data."""
    track = (item or {}).get("track")
    if not track or not track.get("name"):
        return None
    artists = track.get("artists") or []
    artist = (artists[0] or {}).get("name", "") if artists else ""
    return Track(title=track["name"], artist=artist or "")


class SpotifyClient:
    def __init__(self, credentials, http, auth_manager=None):
        self.http = http
        self.bucket = http.limits.spotify
        self.auth_manager = auth_manager or create_auth_manager(credentials, http.session)
        self._token = None

    def login_token(self):
        if self._token is None:
            log.debug("Requesting Spotify login token")
            try:
                self._token = self.bucket.run(self.auth_manager.get_access_token, as_dict=False)
            except spotipy.oauth2.SpotifyOauthError as e:
                raise AuthFlowError(f"Spotify client-credentials login failed: {e}") from e
            except requests.exceptions.RequestException as e:
                raise NetworkError(f"Spotify token request failed: {e}") from e
        return self._token

    def get_playlist(self, playlist_id):
        """Fetch the playlist name and every track, in playlist order."""
        headers = bearer(self.login_token())

        info = self.http.get_json(
            self.bucket, f"{API_BASE}/playlists/{playlist_id}", headers=headers, params={"fields": "name"},
        )
        name = info.get("name")
        if not name:
            log.warning(f"Spotify playlist {playlist_id} has no name, using the id as the YouTube playlist title")
            name = playlist_id

        fetcher = PagedFetcher(self.http, self.bucket)
        items = fetcher.fetch_all(
            f"{API_BASE}/playlists/{playlist_id}/tracks?offset=0&limit={PAGE_SIZE}", headers,
        )

        tracks = []
        dropped = 0
        for item in items:
            track = to_track(item)
            if track is None:
                dropped += 1
                continue
            tracks.append(track)

        if dropped:
            log.warning(f"Ignored {dropped} playlist entries without track data")
        log.debug(f"Got {len(tracks)} tracks for '{name}'")
        return Playlist(name=name, tracks=tuple(tracks))
