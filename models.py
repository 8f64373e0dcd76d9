"""Plain data types passed between the source, destination and migration loop."""

from dataclasses import dataclass
from typing import Tuple


@dataclass(frozen=True)
class Track:
    title: str
    artist: str = ""

    @property
    def search_terms(self):
        return f"{self.title} {self.artist}".strip()


@dataclass(frozen=True)
class Playlist:
    name: str
    tracks: Tuple[Track, ...] = ()


@dataclass
class MigrationReport:
    inserted: int = 0
    skipped: int = 0

    @property
    def processed(self):
        return self.inserted + self.skipped

    def __str__(self):
        return f"{self.inserted} inserted, {self.skipped} skipped"
