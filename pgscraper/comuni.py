"""
City enumeration through the comuni-ita API.

PagineGialle addresses a city by a path segment derived from its name
("Abano Terme" -> "abano_terme"), so every name coming from the API or the
command line goes through comune_slug() before it ends up in a URL.
"""
import csv
import io
import re
import string
from urllib.parse import quote

import aiohttp
from unidecode import unidecode

from pgscraper.config import COMUNI_API_URL
from pgscraper.term import debug

SCOPES = ("provincia", "regione")

_PUNCT_RE = re.compile(f"[{re.escape(string.punctuation)}]")
_SPACE_RE = re.compile(r"\s")


def comune_slug(name: str) -> str:
    # "Sant'Angelo di Piove" -> "sant_angelo_di_piove", "Città di Castello" -> "citta_di_castello"
    s = unidecode(name.strip())
    s = s.rstrip(string.punctuation)
    s = _SPACE_RE.sub("_", s)
    s = _PUNCT_RE.sub("_", s)
    return s.lower()


def parse_comuni_csv(text: str) -> list[str]:
    """First column of every row below the header, blanks and repeats dropped."""
    rows = csv.reader(io.StringIO(text))
    next(rows, None)  # header
    seen = set()
    names = []
    for row in rows:
        if not row:
            continue
        name = row[0].strip()
        if name and name not in seen:
            seen.add(name)
            names.append(name)
    return names


async def fetch_comuni(session: aiohttp.ClientSession, scope: str, name: str,
                       api_url: str = COMUNI_API_URL) -> list[str]:
    """
    Municipality names of a province or a region.

    An unknown province/region (HTTP 404) gives an empty list; any other
    HTTP failure raises aiohttp.ClientResponseError.
    """
    if scope not in SCOPES:
        raise ValueError(f"scope must be one of {SCOPES}, got {scope!r}")

    url = f"{api_url.rstrip('/')}/{scope}/{quote(name.strip())}"
    params = {"format": "csv", "onlyname": "true"}
    debug(f"comuni: GET {url}")
    async with session.get(url, params=params) as resp:
        if resp.status == 404:
            return []
        resp.raise_for_status()
        text = await resp.text()
    return parse_comuni_csv(text)


def big_cities_only(cities: list[str]) -> list[str]:
    """Halve the list, keeping the head the API returned first."""
    if len(cities) < 2:
        return list(cities)
    return cities[: (len(cities) + 1) // 2]
