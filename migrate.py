#!/usr/bin/env python3
"""
Spotify → YouTube Music playlist migration.

Usage:
  python3 migrate.py https://open.spotify.com/playlist/ID                 # Migrate a playlist
  python3 migrate.py https://open.spotify.com/playlist/ID --test          # Test: first 10 tracks only
  python3 migrate.py spotify:playlist:ID --open-browser                   # Also open the login URL
  python3 migrate.py URL --google-client-id ID --google-client-secret S   # Credentials as flags
  python3 migrate.py URL -v                                               # Debug output on the console

Credentials come from flags, environment variables or config.py (see config.example.py).
"""

import argparse
import logging
import sys
import webbrowser

from credentials import FIELDS, MissingCredential, load_credentials
from errors import ExtractionError, MigrationError, SchemaMismatch
from google_oauth import GoogleOAuth
from http_client import HttpClient
from log_setup import get_logger, reset_latest, set_console_level
from models import MigrationReport
from spotify_client import SpotifyClient, parse_playlist_id
from youtube_client import YouTubeClient

TEST_TRACK_LIMIT = 10

log = get_logger("migrate")


def make_url_presenter(open_browser=False):
    """Return the callback that shows the Google login URL to the user."""

    def present(url):
        # The URL carries the login state, so it goes to the terminal and not to the log files.
        print(f"Please open the following URL to log in:\n{url}\n", flush=True)
        log.debug("Login URL shown (state withheld)")
        if open_browser:
            try:
                webbrowser.open(url)
            except webbrowser.Error as e:
                log.warning(f"Could not open browser: {e}. Open the URL manually.")

    return present


def migrate_tracks(playlist, youtube, test_mode=False):
    """Create the destination playlist and add every track that search resolves.

    Tracks are processed in playlist order. A track with no search match is
    skipped with a warning; network errors abort the run.
    Returns (youtube_playlist_id, MigrationReport).
    """
    log.info(f"Creating YouTube playlist '{playlist.name}'")
    playlist_id = youtube.create_playlist(playlist.name)

    tracks = playlist.tracks
    if test_mode:
        tracks = tracks[:TEST_TRACK_LIMIT]
        log.info(f"*** TEST MODE: migrating up to {TEST_TRACK_LIMIT} tracks ***")

    report = MigrationReport()
    total = len(tracks)
    for i, track in enumerate(tracks):
        terms = track.search_terms
        try:
            video_id = youtube.search(terms)
        except ExtractionError as e:
            log.warning(f"[{i+1}/{total}] SKIP  unreadable search results for '{terms}': {e}")
            if isinstance(e, SchemaMismatch) and e.payload is not None:
                log.debug(f"Search payload: {e.payload}")
            report.skipped += 1
            continue

        if video_id is None:
            log.warning(f"[{i+1}/{total}] SKIP  unable to find track with search terms: '{terms}'")
            report.skipped += 1
            continue

        youtube.insert_track(playlist_id, video_id)
        report.inserted += 1
        log.info(f"[{i+1}/{total}] OK    {video_id} | {track.artist or '?'} — {track.title}")

    return playlist_id, report


def run(playlist_id, credentials, *, http=None, test_mode=False, open_browser=False,
        oauth_factory=GoogleOAuth, spotify_factory=SpotifyClient, youtube_factory=YouTubeClient):
    """Full migration: Google login, Spotify fetch, YouTube playlist + inserts."""
    http = http or HttpClient()

    log.info("=== Logging in to Google ===")
    oauth = oauth_factory(credentials.google, http)
    access_token = oauth.authorize(make_url_presenter(open_browser))
    log.info("Google login complete.")

    log.info("\n=== Fetching Spotify playlist ===")
    spotify = spotify_factory(credentials.spotify, http)
    playlist = spotify.get_playlist(playlist_id)
    log.info(f"Got {len(playlist.tracks)} tracks for '{playlist.name}'")

    log.info("\n=== Migrating tracks ===")
    youtube = youtube_factory(http, access_token)
    _, report = migrate_tracks(playlist, youtube, test_mode=test_mode)

    log.info(f"\nDone! {report} ({report.processed} processed)")
    return report


class HelpOnErrorParser(argparse.ArgumentParser):
    def error(self, message):
        self.print_help(sys.stderr)
        sys.stderr.write(f"\nerror: {message}\n")
        sys.exit(2)


def build_parser():
    parser = HelpOnErrorParser(
        description="Spotify → YouTube Music playlist migration",
        usage="%(prog)s PLAYLIST_URL [options]",
    )
    parser.add_argument("playlist_url", help="Spotify playlist URL or spotify:playlist: URI")
    for name in FIELDS:
        parser.add_argument(
            f"--{name.replace('_', '-')}",
            dest=name,
            metavar="VALUE",
            help=f"Defaults to ${name.upper()} or config.py",
        )
    parser.add_argument("--test", action="store_true", help=f"Limit to {TEST_TRACK_LIMIT} tracks")
    parser.add_argument("--open-browser", action="store_true", help="Open the Google login URL in a browser")
    parser.add_argument("-v", "--verbose", action="store_true", help="Show debug output on the console")
    return parser


def main(argv=None):
    reset_latest()

    parser = build_parser()
    args = parser.parse_args(argv)

    if args.verbose:
        set_console_level(logging.DEBUG)

    try:
        playlist_id = parse_playlist_id(args.playlist_url)
    except ValueError as e:
        parser.error(str(e))
    log.debug(f"Found playlist ID: {playlist_id}")

    try:
        credentials = load_credentials({name: getattr(args, name) for name in FIELDS})
    except MissingCredential as e:
        parser.error(str(e))

    try:
        run(playlist_id, credentials, test_mode=args.test, open_browser=args.open_browser)
    except MigrationError as e:
        log.error(f"Migration failed: {e}")
        return 1
    except KeyboardInterrupt:
        log.error("Interrupted.")
        return 130
    return 0


if __name__ == "__main__":
    sys.exit(main())
