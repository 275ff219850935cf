import csv
from pathlib import Path
from typing import Iterable

from pgscraper.aggregate import BusinessEntry, unique_sorted
from pgscraper.term import debug

FIELDNAMES = BusinessEntry._fields   # name, address, phones


def output_path(name: str) -> Path:
    return Path(name).with_suffix(".csv")


def write_csv(entries: Iterable[BusinessEntry], path: Path) -> int:
    """Write entries with a header row; returns the number of rows written."""
    n = 0
    with open(path, "w", newline="", encoding="utf-8") as f:
        w = csv.writer(f)
        w.writerow(FIELDNAMES)
        for e in entries:
            w.writerow(e)
            n += 1
    return n


def read_csv(path: Path) -> list[BusinessEntry]:
    entries = []
    with open(path, newline="", encoding="utf-8") as f:
        for row in csv.DictReader(f):
            name = (row.get("name") or "").strip()
            if not name:
                continue
            entries.append(BusinessEntry(
                name=name,
                address=(row.get("address") or "").strip(),
                phones=(row.get("phones") or "").strip(),
            ))
    return entries


def merge_folder(folder: Path, exclude: Path | None = None) -> list[BusinessEntry]:
    """Every *.csv directly inside folder, merged and deduplicated."""
    folder = Path(folder)
    if not folder.is_dir():
        raise NotADirectoryError(f"not a folder: {folder}")
    skip = exclude.resolve() if exclude else None

    entries = []
    for p in sorted(folder.glob("*.csv")):
        if not p.is_file() or p.resolve() == skip:
            continue
        rows = read_csv(p)
        debug(f"merge: {p.name} -> {len(rows)} rows")
        entries.extend(rows)
    return unique_sorted(entries)
