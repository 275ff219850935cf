from typing import NamedTuple
from urllib.parse import quote

from pgscraper.config import PAGINEGIALLE_URL

# Two kinds of result pages:
#   filter: <base>/<regione>/<citta>/<categoria>/p-<n>.html
#   search: <base>/ricerca/<query>[/<citta>]/p-<n>          (no .html)


class PageRequest(NamedTuple):
    place: str      # city or search location, for the "no results" report
    page: int
    url: str


def filter_requests(region: str, cities: list[str], category: str | None,
                    page_limit: int, base_url: str = PAGINEGIALLE_URL) -> list[PageRequest]:
    base = base_url.rstrip("/")
    reqs = []
    for city in cities:
        prefix = f"{base}/{region}/{city}/{category}" if category else f"{base}/{region}/{city}"
        for page in range(1, page_limit + 1):
            reqs.append(PageRequest(city, page, f"{prefix}/p-{page}.html"))
    return reqs


def search_requests(query: str, location: str | None, page_limit: int,
                    base_url: str = PAGINEGIALLE_URL) -> list[PageRequest]:
    base = base_url.rstrip("/")
    prefix = f"{base}/ricerca/{quote(query.strip(), safe='')}"
    if location:
        prefix += "/" + quote(location.strip(), safe="")
    place = location or query
    return [PageRequest(place, page, f"{prefix}/p-{page}") for page in range(1, page_limit + 1)]
