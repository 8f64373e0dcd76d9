"""Tests for migrate.py — the migration loop, run() wiring and the CLI."""

import logging
import os
import sys
import webbrowser
from unittest.mock import MagicMock, patch

sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

import pytest

import log_setup
import migrate
import pkce
from credentials import AppCredentials, Credentials, FIELDS
from errors import MarkerNotFound, NetworkError, SchemaMismatch, StateMismatch
from google_oauth import build_authorization_url
from models import Playlist, Track

CREDS = AppCredentials(
    google=Credentials("g-id", "g-secret"),
    spotify=Credentials("s-id", "s-secret"),
)

ROAD_TRIP = Playlist("Road Trip", (Track("Song A", "Band X"), Track("Song B", "")))

VALID_URL = "https://open.spotify.com/playlist/37i9dQZF1DXcBWIGoYBM5M"


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def make_youtube(results=None, playlist_id="yt1"):
    """YouTube double; results maps search terms to a video id, None or an exception."""
    results = results or {}
    youtube = MagicMock()
    youtube.create_playlist.return_value = playlist_id

    def search(terms):
        result = results.get(terms)
        if isinstance(result, Exception):
            raise result
        return result

    youtube.search.side_effect = search
    return youtube


def warnings_from(caplog, name="migrate"):
    return [r for r in caplog.records if r.name == name and r.levelno == logging.WARNING]


@pytest.fixture
def no_credentials(monkeypatch):
    for name in FIELDS:
        monkeypatch.delenv(name.upper(), raising=False)
    with patch("credentials.load_config_module", return_value=None):
        yield


@pytest.fixture
def all_flags():
    args = []
    for name in FIELDS:
        args += [f"--{name.replace('_', '-')}", f"{name}-value"]
    return args


# ---------------------------------------------------------------------------
# migrate_tracks()
# ---------------------------------------------------------------------------

class TestMigrateTracks:
    def test_road_trip(self, caplog):
        caplog.set_level(logging.DEBUG)
        youtube = make_youtube({"Song A Band X": "vidA", "Song B": None})

        playlist_id, report = migrate.migrate_tracks(ROAD_TRIP, youtube)

        assert playlist_id == "yt1"
        youtube.create_playlist.assert_called_once_with("Road Trip")
        youtube.insert_track.assert_called_once_with("yt1", "vidA")
        assert str(report) == "1 inserted, 1 skipped"
        assert report.processed == 2

        warnings = warnings_from(caplog)
        assert len(warnings) == 1
        assert "Song B" in warnings[0].getMessage()

    def test_search_order_follows_playlist(self):
        youtube = make_youtube()
        tracks = tuple(Track(f"Song {i}", "Band") for i in range(5))
        migrate.migrate_tracks(Playlist("P", tracks), youtube)
        assert [c[0][0] for c in youtube.search.call_args_list] == [f"Song {i} Band" for i in range(5)]

    def test_playlist_created_before_any_search(self):
        events = []
        youtube = make_youtube({"Song A Band X": "vidA"})
        youtube.create_playlist.side_effect = lambda name: events.append("create") or "yt1"
        youtube.search.side_effect = lambda terms: events.append("search")
        migrate.migrate_tracks(ROAD_TRIP, youtube)
        assert events[0] == "create"

    def test_unreadable_search_page_is_skipped(self, caplog):
        youtube = make_youtube({
            "Song A Band X": MarkerNotFound("data: '"),
            "Song B": SchemaMismatch("no tabs", payload={"x": 1}),
        })
        _, report = migrate.migrate_tracks(ROAD_TRIP, youtube)
        assert report.inserted == 0
        assert report.skipped == 2
        youtube.insert_track.assert_not_called()
        assert len(warnings_from(caplog)) == 2

    def test_network_error_aborts(self):
        youtube = make_youtube({"Song A Band X": "vidA"})
        youtube.insert_track.side_effect = NetworkError("quota exceeded", status_code=403)
        with pytest.raises(NetworkError):
            migrate.migrate_tracks(ROAD_TRIP, youtube)
        youtube.search.assert_called_once()

    def test_test_mode_limits_tracks(self):
        tracks = tuple(Track(f"Song {i}") for i in range(25))
        youtube = make_youtube({f"Song {i}": f"vid{i}" for i in range(25)})
        _, report = migrate.migrate_tracks(Playlist("Big", tracks), youtube, test_mode=True)
        assert report.inserted == migrate.TEST_TRACK_LIMIT
        assert youtube.search.call_count == migrate.TEST_TRACK_LIMIT

    def test_empty_playlist(self):
        youtube = make_youtube()
        playlist_id, report = migrate.migrate_tracks(Playlist("Empty"), youtube)
        assert playlist_id == "yt1"
        assert report.processed == 0
        youtube.search.assert_not_called()


# ---------------------------------------------------------------------------
# run()
# ---------------------------------------------------------------------------

class TestRun:
    def test_wiring_and_order(self):
        events = []
        http = MagicMock()

        oauth_factory = MagicMock()
        oauth_factory.return_value.authorize.side_effect = lambda present: events.append("auth") or "ya29"

        spotify_factory = MagicMock()
        spotify_factory.return_value.get_playlist.side_effect = lambda pid: events.append("spotify") or ROAD_TRIP

        youtube = make_youtube({"Song A Band X": "vidA", "Song B": "vidB"})
        youtube_factory = MagicMock(return_value=youtube)

        report = migrate.run(
            "pl1", CREDS, http=http,
            oauth_factory=oauth_factory, spotify_factory=spotify_factory, youtube_factory=youtube_factory,
        )

        assert events == ["auth", "spotify"]
        oauth_factory.assert_called_once_with(CREDS.google, http)
        spotify_factory.assert_called_once_with(CREDS.spotify, http)
        spotify_factory.return_value.get_playlist.assert_called_once_with("pl1")
        youtube_factory.assert_called_once_with(http, "ya29")
        assert report.inserted == 2

    def test_auth_failure_stops_before_spotify(self):
        oauth_factory = MagicMock()
        oauth_factory.return_value.authorize.side_effect = StateMismatch("state mismatch")
        spotify_factory = MagicMock()
        with pytest.raises(StateMismatch):
            migrate.run("pl1", CREDS, http=MagicMock(), oauth_factory=oauth_factory,
                        spotify_factory=spotify_factory, youtube_factory=MagicMock())
        spotify_factory.assert_not_called()


# ---------------------------------------------------------------------------
# make_url_presenter()
# ---------------------------------------------------------------------------

class TestUrlPresenter:
    def test_prints_url(self, capsys):
        with patch("migrate.webbrowser.open") as wb_open:
            migrate.make_url_presenter()("https://accounts.example.com/auth")
        wb_open.assert_not_called()
        assert "https://accounts.example.com/auth" in capsys.readouterr().out

    def test_state_kept_out_of_logs(self, caplog, capsys):
        caplog.set_level(logging.DEBUG)
        log_setup.reset_latest()
        session = pkce.new_session(5555)
        url = build_authorization_url("cid", session)

        migrate.make_url_presenter()(url)

        assert session.state in capsys.readouterr().out
        assert all(session.state not in r.getMessage() for r in caplog.records)
        with open(log_setup.LATEST_LOG, encoding="utf-8") as f:
            assert session.state not in f.read()

    def test_opens_browser(self):
        with patch("migrate.webbrowser.open") as wb_open:
            migrate.make_url_presenter(open_browser=True)("https://accounts.example.com/auth")
        wb_open.assert_called_once_with("https://accounts.example.com/auth")

    def test_browser_error_is_warning(self, caplog):
        with patch("migrate.webbrowser.open", side_effect=webbrowser.Error("no browser")):
            migrate.make_url_presenter(open_browser=True)("https://accounts.example.com/auth")
        assert len(warnings_from(caplog)) == 1


# ---------------------------------------------------------------------------
# main()
# ---------------------------------------------------------------------------

class TestMain:
    def test_success(self, all_flags):
        with patch("migrate.run") as run:
            assert migrate.main([VALID_URL, "--test"] + all_flags) == 0
        playlist_id, creds = run.call_args[0]
        assert playlist_id == "37i9dQZF1DXcBWIGoYBM5M"
        assert creds.google == Credentials("google_client_id-value", "google_client_secret-value")
        assert run.call_args[1] == {"test_mode": True, "open_browser": False}

    def test_missing_credentials(self, no_credentials, capsys):
        with patch("migrate.run") as run:
            with pytest.raises(SystemExit) as exc:
                migrate.main([VALID_URL])
        assert exc.value.code == 2
        run.assert_not_called()
        assert "google_client_id" in capsys.readouterr().err

    def test_invalid_url(self, all_flags):
        with patch("migrate.run") as run:
            with pytest.raises(SystemExit) as exc:
                migrate.main(["https://open.spotify.com/album/xyz"] + all_flags)
        assert exc.value.code == 2
        run.assert_not_called()

    def test_migration_error_exit_code(self, all_flags):
        with patch("migrate.run", side_effect=NetworkError("boom")):
            assert migrate.main([VALID_URL] + all_flags) == 1

    def test_verbose_sets_console_level(self, all_flags):
        with patch("migrate.run"), patch("migrate.set_console_level") as set_level:
            migrate.main([VALID_URL, "-v"] + all_flags)
        set_level.assert_called_once_with(logging.DEBUG)

    def test_env_credentials(self, no_credentials, monkeypatch):
        for name in FIELDS:
            monkeypatch.setenv(name.upper(), f"env-{name}")
        with patch("migrate.run") as run:
            assert migrate.main([VALID_URL]) == 0
        assert run.call_args[0][1].spotify.client_id == "env-spotify_client_id"
