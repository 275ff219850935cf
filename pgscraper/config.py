import os
import random


def _env_int(name: str, default: int) -> int:
    raw = os.environ.get(name, "").strip()
    return int(raw) if raw.isdigit() and int(raw) > 0 else default

# ----------------------------- CONFIG ---------------------------------

PAGINEGIALLE_URL = "https://www.paginegialle.it"
COMUNI_API_URL = "https://axqvoqvbfjpaamphztgd.functions.supabase.co/comuni"

DEFAULT_PAGE_LIMIT = _env_int("PG_PAGE_LIMIT", 20)   # pages per (city, category) query
DEFAULT_OUTPUT = "output"                            # ".csv" gets appended

CONCURRENCY = _env_int("PG_CONCURRENCY", 50)         # paginegialle starts answering 429 well above this
CONNECT_TIMEOUT = 20
READ_TIMEOUT = 30
MAX_RETRIES = 3
BACKOFF_START = 0.4
BACKOFF_MAX = 8.0

HEADERS = {
    "Accept": "text/html,application/xhtml+xml,application/xml;q=0.9,*/*;q=0.8",
    "Accept-Language": "it-IT,it;q=0.9,en-US;q=0.6,en;q=0.5",
    "Cache-Control": "no-cache",
    "Pragma": "no-cache",
}

USER_AGENTS = [
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 (KHTML, like Gecko) Chrome/125.0.0.0 Safari/537.36",
    "Mozilla/5.0 (Macintosh; Intel Mac OS X 13_6_7) AppleWebKit/537.36 (KHTML, like Gecko) Chrome/125.0.0.0 Safari/537.36",
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64; rv:124.0) Gecko/20100101 Firefox/124.0",
    "Mozilla/5.0 (X11; Linux x86_64; rv:124.0) Gecko/20100101 Firefox/124.0",
]

# CSS selectors used on result pages
SELECTORS = {
    "listing_container": ".search-itm",
    "name":    ".search-itm__rag",
    "address": ".search-itm__adr",
    "phone":   ".search-itm__phone",
}


def pick_ua():
    return random.choice(USER_AGENTS)
