from collections import Counter
from typing import Iterable, NamedTuple


class BusinessEntry(NamedTuple):
    name: str
    address: str
    phones: str


class NoResultsError(Exception):
    """Every place came back without a single listing."""


def unique_sorted(entries: Iterable[BusinessEntry]) -> list[BusinessEntry]:
    """Sort by (name, address) ignoring case and drop exact duplicates."""
    out = []
    seen = set()
    for e in sorted(entries, key=lambda e: (e.name.lower(), e.address.lower())):
        if e in seen:
            continue
        seen.add(e)
        out.append(e)
    return out


class Aggregator:
    """Collects entries page by page and tracks which places came back empty."""

    def __init__(self, pages_per_place: int):
        self.pages_per_place = pages_per_place
        self.entries: list[BusinessEntry] = []
        self.empty_pages: Counter[str] = Counter()
        self.places: dict[str, None] = {}   # first-seen order
        self.pages = 0
        self.skipped = 0

    def add_page(self, place: str, entries: list[BusinessEntry]) -> None:
        self.places.setdefault(place, None)
        self.pages += 1
        if not entries:
            self.empty_pages[place] += 1
            return
        for e in entries:
            # a listing without a phone is useless for us
            if e.name and e.phones:
                self.entries.append(e)
            else:
                self.skipped += 1

    def not_found(self) -> list[str]:
        return [p for p in self.places if self.empty_pages[p] >= self.pages_per_place]

    def all_empty(self) -> bool:
        return bool(self.places) and len(self.not_found()) == len(self.places)

    def results(self) -> list[BusinessEntry]:
        return unique_sorted(self.entries)
