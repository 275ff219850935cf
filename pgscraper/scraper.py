import asyncio
import signal
import sys
import time

from pgscraper.aggregate import Aggregator
from pgscraper.extract import extract_entries
from pgscraper.fetcher import Fetcher
from pgscraper.queries import PageRequest
from pgscraper.term import C, banner, status_done, status_panel_init, status_set


class Scraper:
    """
    Fans a fixed list of page requests out to a pool of workers.

    Every page is fetched, parsed and handed to the aggregator; nothing new
    gets discovered along the way, so the run ends when the queue is empty.
    """

    def __init__(self, fetcher: Fetcher, aggregator: Aggregator, workers: int | None = None):
        self.fetcher = fetcher
        self.aggregator = aggregator
        self.workers = workers or fetcher.concurrency
        self.q: asyncio.Queue = asyncio.Queue()
        self.stop = asyncio.Event()
        self.in_flight = 0
        self.done = 0
        self.total = 0
        self.interrupted = False
        self._force_cancel = False

    async def worker(self, wid: int):
        while not self.stop.is_set():
            try:
                req = self.q.get_nowait()
            except asyncio.QueueEmpty:
                return

            self.in_flight += 1
            try:
                html = await self.fetcher.get(req.url)
                entries = extract_entries(html) if html else []
                self.aggregator.add_page(req.place, entries)
            except Exception as e:
                banner(f"W{wid}", f"error on {req.url}: {e!r}", C.red, file=sys.stderr)
            finally:
                self.in_flight -= 1
            # cancelled pages never get here
            self.done += 1

    def _status(self):
        f = self.fetcher
        pct = 100.0 * self.done / self.total if self.total else 100.0
        status_set(0, (
            f"{C.cyan}[SCRAPE]{C.reset} "
            f"{C.bold}{pct:3.0f}%{C.reset} "
            f"pages={C.cyan}{self.done}/{self.total}{C.reset} "
            f"inflight={C.yellow}{self.in_flight}{C.reset} "
            f"entries={C.green}{len(self.aggregator.entries)}{C.reset}"
        ))
        status_set(1, (
            f"{C.cyan}[HTTP]{C.reset} "
            f"ok={C.cyan}{f.pages_ok_meter.val}{C.reset}({f.pages_ok_meter.rate():,.1f}/s) "
            f"404={C.yellow}{f.http_404s}{C.reset} "
            f"429={C.magenta}{f.http_429s}{C.reset} "
            f"503={C.magenta}{f.http_503s}{C.reset} "
            f"err={C.red}{f.http_errors + f.failures}{C.reset}"
        ))

    async def run(self, requests: list[PageRequest]) -> Aggregator:
        if not requests:
            return self.aggregator

        for r in requests:
            self.q.put_nowait(r)
        self.total = len(requests)

        workers = [asyncio.create_task(self.worker(i)) for i in range(min(self.workers, self.total))]

        # signal hooks
        loop = asyncio.get_running_loop()
        hooked = []
        for sig in (signal.SIGINT, signal.SIGTERM):
            try:
                loop.add_signal_handler(sig, self._shutdown, sig)
                hooked.append(sig)
            except (NotImplementedError, RuntimeError):
                pass

        self.fetcher.pages_ok_meter.t0 = time.time()
        status_panel_init(2)
        try:
            while not self._force_cancel:
                finished, _ = await asyncio.wait(workers, timeout=0.5)
                self._status()
                if len(finished) == len(workers):
                    break
        finally:
            for sig in hooked:
                loop.remove_signal_handler(sig)

        # -------- wind down --------
        if self._force_cancel:
            for w in workers:
                w.cancel()
        await asyncio.gather(*workers, return_exceptions=True)
        self._status()
        status_done()
        return self.aggregator

    def _shutdown(self, sig):
        self.interrupted = True
        if not self.stop.is_set():
            banner("SHUTDOWN", f"{sig.name}: finishing in-flight pages…", C.yellow, file=sys.stderr)
            self.stop.set()  # no new pages; let workers finish
        else:
            banner("SHUTDOWN", f"{sig.name}: forcing cancellation…", C.yellow, file=sys.stderr)
            self._force_cancel = True
