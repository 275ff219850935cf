import asyncio
import random
import sys

import aiohttp

from pgscraper.config import (
    BACKOFF_MAX, BACKOFF_START, CONCURRENCY, CONNECT_TIMEOUT, HEADERS, MAX_RETRIES,
    READ_TIMEOUT, pick_ua,
)
from pgscraper.term import C, Meter, banner, debug

# --------------------------- FETCHING -----------------------------------

class Fetcher:
    def __init__(self, concurrency: int = CONCURRENCY, max_retries: int = MAX_RETRIES,
                 backoff: float = BACKOFF_START):
        self.concurrency = concurrency
        self.max_retries = max(1, max_retries)
        self.backoff = backoff
        # Global concurrency gate
        self.sem = asyncio.Semaphore(concurrency)

        self.session = None
        self.http_404s = 0
        self.http_429s = 0
        self.http_503s = 0
        self.http_errors = 0        # any other >= 400
        self.failures = 0           # gave up after retries (network/timeouts)
        self.pages_ok_meter = Meter()

    async def __aenter__(self):
        # A tolerant cookie jar helps if the site sets slightly non-RFC cookies
        jar = aiohttp.CookieJar(unsafe=True)
        self.session = aiohttp.ClientSession(
            cookie_jar=jar,
            connector=aiohttp.TCPConnector(
                limit=0,  # rate-limited via the semaphore
                ttl_dns_cache=300,
                keepalive_timeout=30,
            ),
            timeout=aiohttp.ClientTimeout(
                total=None,
                sock_connect=CONNECT_TIMEOUT,
                sock_read=READ_TIMEOUT,
            ),
            headers=HEADERS | {"User-Agent": pick_ua()},
        )
        return self

    async def __aexit__(self, exc_type, exc, tb):
        if self.session:
            await self.session.close()

    def _retry_delay(self, resp: aiohttp.ClientResponse, backoff: float) -> float:
        retry_after = resp.headers.get("Retry-After")
        if retry_after:
            try:
                # header can be seconds or an HTTP-date
                return min(float(retry_after), BACKOFF_MAX * 4)
            except ValueError:
                pass
        return backoff + random.uniform(0, backoff)

    async def get(self, url: str) -> str | None:
        """
        GET a result page. Returns the HTML, or None when the page is missing
        or could not be fetched within max_retries attempts.
        """
        async with self.sem:
            backoff = self.backoff
            for attempt in range(1, self.max_retries + 1):
                last = attempt == self.max_retries
                try:
                    req_headers = {"User-Agent": pick_ua()}
                    async with self.session.get(url, allow_redirects=True, headers=req_headers) as resp:
                        if resp.status == 404:
                            self.http_404s += 1
                            return None

                        if resp.status in (429, 503):
                            if resp.status == 429:
                                self.http_429s += 1
                            else:
                                self.http_503s += 1
                            if last:
                                banner("FETCH", f"{url}: still {resp.status} after {attempt} attempts, skipping",
                                       C.red, file=sys.stderr)
                                return None
                            delay = self._retry_delay(resp, backoff)
                            debug(f"{resp.status} on {url}, retry in {delay:.1f}s")
                            await asyncio.sleep(delay)
                            backoff = min(backoff * 2, BACKOFF_MAX)
                            continue

                        if resp.status >= 400:
                            # treat other 4xx/5xx as terminal for this URL
                            self.http_errors += 1
                            debug(f"{resp.status} on {url}, skipping")
                            return None

                        ct = (resp.headers.get("Content-Type") or "").lower()
                        if "text/html" not in ct and "application/xhtml+xml" not in ct:
                            self.http_errors += 1
                            debug(f"unexpected content type {ct!r} on {url}")
                            return None

                        text = await resp.text(errors="ignore")
                        self.pages_ok_meter.add(1)
                        return text

                except asyncio.CancelledError:
                    raise
                except (aiohttp.ClientError, asyncio.TimeoutError) as e:
                    if last:
                        self.failures += 1
                        banner("FETCH", f"giving up on {url}: {e!r}", C.red, file=sys.stderr)
                        return None
                    debug(f"attempt {attempt} on {url} failed: {e!r}")
                    # exponential backoff with jitter
                    await asyncio.sleep(backoff + random.uniform(0, backoff))
                    backoff = min(backoff * 2, BACKOFF_MAX)

            return None  # should not hit
