import asyncio
import signal

import pytest
from aiohttp import web

from pgscraper.aggregate import Aggregator, BusinessEntry
from pgscraper.fetcher import Fetcher
from pgscraper.queries import filter_requests
from pgscraper.scraper import Scraper


@pytest.fixture
def directory_app(listing, result_page, empty_page):
    pages = {
        ("padova", 1): result_page(
            listing("Trattoria Da Mario", "Via Roma, 12", "049 8751234"),
            listing("Edicola Centrale", "Piazza Erbe, 1"),
        ),
        ("padova", 2): result_page(
            listing("Trattoria Da Mario", "Via Roma, 12", "049 8751234"),
            listing("Al Bersagliere", "Via Dondi dall'Orologio, 2", "049 8754444"),
        ),
        ("abano_terme", 1): result_page(
            listing("Hotel Terme", "Viale delle Terme, 5", "049 8669999 333 7654321"),
        ),
    }

    async def page(request):
        city = request.match_info["city"]
        if city == "broken":
            return web.Response(status=500)
        html = pages.get((city, int(request.match_info["page"])), empty_page)
        return web.Response(text=html, content_type="text/html")

    app = web.Application()
    app.router.add_get(r"/veneto/{city}/ristoranti/p-{page:\d+}.html", page)
    return app


@pytest.mark.asyncio
async def test_scrape_cities(serve, directory_app):
    base = await serve(directory_app)
    reqs = filter_requests("veneto", ["padova", "abano_terme", "vo", "broken"], "ristoranti", 3, base)

    async with Fetcher(concurrency=4, max_retries=1, backoff=0.01) as fetcher:
        scraper = Scraper(fetcher, Aggregator(3))
        agg = await scraper.run(reqs)

    assert scraper.done == scraper.total == 12
    assert not scraper.interrupted
    assert agg.pages == 12
    assert agg.skipped == 1
    assert set(agg.not_found()) == {"vo", "broken"}
    assert not agg.all_empty()
    assert agg.results() == [
        BusinessEntry("Al Bersagliere", "Via Dondi dall'Orologio, 2", "049-8754444"),
        BusinessEntry("Hotel Terme", "Viale delle Terme, 5", "049-8669999 | 333-7654321"),
        BusinessEntry("Trattoria Da Mario", "Via Roma, 12", "049-8751234"),
    ]
    assert fetcher.http_errors == 3


@pytest.mark.asyncio
async def test_scrape_nothing():
    async with Fetcher(concurrency=2) as fetcher:
        agg = await Scraper(fetcher, Aggregator(1)).run([])
    assert agg.pages == 0
    assert agg.results() == []


@pytest.mark.asyncio
async def test_scrape_all_empty(serve, directory_app):
    base = await serve(directory_app)
    reqs = filter_requests("veneto", ["vo", "teolo"], "ristoranti", 2, base)
    async with Fetcher(concurrency=8, backoff=0.01) as fetcher:
        agg = await Scraper(fetcher, Aggregator(2), workers=2).run(reqs)
    assert agg.all_empty()
    assert set(agg.not_found()) == {"vo", "teolo"}


@pytest.fixture
def slow_app(listing, result_page):
    def _app(delay):
        async def page(request):
            await asyncio.sleep(delay)
            n = request.match_info["page"]
            html = result_page(listing(f"Bar {n}", f"Via Roma, {n}", f"049 10{n}"))
            return web.Response(text=html, content_type="text/html")

        app = web.Application()
        app.router.add_get(r"/veneto/{city}/bar/p-{page:\d+}.html", page)
        return app
    return _app


@pytest.mark.asyncio
async def test_first_signal_finishes_in_flight_pages(serve, slow_app):
    base = await serve(slow_app(0.3))
    reqs = filter_requests("veneto", ["padova"], "bar", 20, base)

    async with Fetcher(concurrency=2, backoff=0.01) as fetcher:
        scraper = Scraper(fetcher, Aggregator(20))
        asyncio.get_running_loop().call_later(0.1, scraper._shutdown, signal.SIGINT)
        agg = await scraper.run(reqs)

    assert scraper.interrupted
    assert scraper.done == agg.pages == 2
    assert len(agg.results()) == 2
    assert scraper.q.qsize() == 18


@pytest.mark.asyncio
async def test_second_signal_cancels_in_flight_pages(serve, slow_app):
    base = await serve(slow_app(2.0))
    reqs = filter_requests("veneto", ["padova"], "bar", 20, base)

    async with Fetcher(concurrency=2, backoff=0.01) as fetcher:
        scraper = Scraper(fetcher, Aggregator(20))
        loop = asyncio.get_running_loop()
        loop.call_later(0.1, scraper._shutdown, signal.SIGINT)
        loop.call_later(0.2, scraper._shutdown, signal.SIGINT)
        agg = await scraper.run(reqs)

    assert scraper.interrupted
    assert agg.pages == 0
    assert scraper.done == 0
    assert scraper.in_flight == 0
