"""YouTube destination: create the playlist, search YouTube Music, insert videos."""

from errors import NetworkError
from http_client import bearer
from log_setup import get_logger
from search_extract import extract_first_match

API_BASE = "https://www.googleapis.com/youtube/v3"
SEARCH_URL = "https://music.youtube.com/search"

# The search page only embeds the result data for desktop browsers.
BROWSER_USER_AGENT = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 (KHTML, like Gecko) "
    "Chrome/87.0.4280.88 Safari/537.36 Edg/87.0.664.66"
)

log = get_logger("youtube")


class YouTubeClient:
    def __init__(self, http, access_token):
        self.http = http
        self.access_token = access_token

    def create_playlist(self, name):
        """Create a playlist titled `name` and return its id."""
        response = self.http.post_json(
            self.http.limits.youtube,
            f"{API_BASE}/playlists?part=snippet",
            {"snippet": {"title": name}},
            headers=bearer(self.access_token),
        )
        playlist_id = response.get("id")
        if not playlist_id:
            raise NetworkError(f"YouTube did not return an id for new playlist '{name}'")
        log.debug(f"Created playlist '{name}' ({playlist_id})")
        return playlist_id

    def insert_track(self, playlist_id, video_id):
        payload = {
            "snippet": {
                "playlistId": playlist_id,
                "resourceId": {
                    "kind": "youtube#video",
                    "videoId": video_id,
                },
            },
        }
        self.http.post_json(
            self.http.limits.youtube,
            f"{API_BASE}/playlistItems?part=snippet",
            payload,
            headers=bearer(self.access_token),
        )
        log.debug(f"Inserted {video_id} into playlist {playlist_id}")

    def search(self, terms):
        """Return the video id of the first YouTube Music result for `terms`, or None."""
        body = self.http.get_text(
            self.http.limits.youtube_search,
            SEARCH_URL,
            headers={"User-Agent": BROWSER_USER_AGENT},
            params={"q": terms},
        )
        log.debug(f"Extracting JSON from search response for '{terms}'")
        return extract_first_match(body)
