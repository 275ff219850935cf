import argparse
import asyncio
import csv
import sys
import time

import aiohttp

from pgscraper import __version__
from pgscraper.aggregate import Aggregator, NoResultsError
from pgscraper.comuni import big_cities_only, comune_slug, fetch_comuni
from pgscraper.config import (
    COMUNI_API_URL, CONCURRENCY, DEFAULT_OUTPUT, DEFAULT_PAGE_LIMIT, PAGINEGIALLE_URL,
)
from pgscraper.fetcher import Fetcher
from pgscraper.output import merge_folder, output_path, write_csv
from pgscraper.queries import PageRequest, filter_requests, search_requests
from pgscraper.scraper import Scraper
from pgscraper.term import C, banner, set_debug

EXIT_OK = 0
EXIT_FAIL = 1
EXIT_INTERRUPTED = 130


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="pgscraper",
        description="Scrapes PagineGialle businesses data into a csv file. "
                    "Punctuation in names should be replaced with _",
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    parser.add_argument("-o", "--output", default=DEFAULT_OUTPUT,
                        help="output filename, .csv is appended (default: %(default)s)")
    parser.add_argument("-l", "--limit", dest="page_limit", type=int, default=DEFAULT_PAGE_LIMIT,
                        help="maximum pages scraped for each query (default: %(default)s)")
    parser.add_argument("-j", "--concurrency", type=int, default=CONCURRENCY,
                        help="maximum simultaneous requests (default: %(default)s)")
    parser.add_argument("-d", "--debug", action="store_true", help="show debugging info")

    sub = parser.add_subparsers(dest="mode", required=True, metavar="MODE")

    p = sub.add_parser("search", help="search query, optionally in a location "
                                      "(urls like /ricerca/<search>/[<citta>])")
    p.add_argument("query", help="business category or business name")
    p.add_argument("location", nargs="?", help="city or region to search in")

    p = sub.add_parser("filter", help="region, optional city and category "
                                      "(urls like /<regione>/<citta>/<categoria>.html)")
    p.add_argument("region", help="region to search businesses in")
    p.add_argument("city", nargs="?",
                   help="city to search businesses in; if left out, ALL cities of the region are scraped")
    p.add_argument("-c", "--category", help="business category to search for")
    p.add_argument("-a", "--all-regions-cities", action="store_true",
                   help="if CITY is a province (example: Padova), scrape all cities in the province")
    p.add_argument("-b", "--big-cities-only", action="store_true",
                   help="halve the cities list when scraping whole regions or provinces: "
                        "fewer requests, fewer results")

    p = sub.add_parser("merge", help="merge CSV files into a single one, removing duplicates")
    p.add_argument("folder_path", help="folder with the CSVs to merge (only *.csv files are read)")

    return parser

# ------------------------------ MODES -----------------------------------

async def resolve_cities(fetcher: Fetcher, args) -> list[str]:
    if args.city is None:
        names = await fetch_comuni(fetcher.session, "regione", args.region, COMUNI_API_URL)
        if not names:
            banner("COMUNI", f"unknown region {args.region!r}", C.red, file=sys.stderr)
    elif args.all_regions_cities:
        names = await fetch_comuni(fetcher.session, "provincia", args.city, COMUNI_API_URL)
        if not names:
            banner("COMUNI", f"{args.city!r} is not a province, scraping it as a single city", C.yellow)
            names = [args.city]
    else:
        names = [args.city]

    cities = list(dict.fromkeys(comune_slug(n) for n in names))
    if args.big_cities_only and len(cities) > 1:
        cities = big_cities_only(cities)
    return cities


async def scrape(fetcher: Fetcher, requests: list[PageRequest], page_limit: int) -> Scraper:
    banner("RUN", f"requests to perform: {len(requests)}", C.cyan)
    scraper = Scraper(fetcher, Aggregator(page_limit))
    agg = await scraper.run(requests)

    missing = agg.not_found()
    # an interrupted run keeps whatever it got, even nothing
    if agg.all_empty() and not scraper.interrupted:
        raise NoResultsError("no city got any result. Is the business category valid?")
    if missing:
        banner("EMPTY", f"no results for: {', '.join(missing)}", C.yellow, file=sys.stderr)
    return scraper


def save(scraper: Scraper, output: str) -> int:
    agg = scraper.aggregator
    path = output_path(output)
    banner("SAVE", "scraping finished, saving to CSV…", C.cyan)
    n = write_csv(agg.results(), path)
    banner("DONE", f"{n} businesses -> {path} (skipped {agg.skipped} without name or phone)", C.green)
    return EXIT_INTERRUPTED if scraper.interrupted else EXIT_OK


async def run_filter(args) -> int:
    async with Fetcher(concurrency=args.concurrency) as fetcher:
        cities = await resolve_cities(fetcher, args)
        if not cities:
            return EXIT_FAIL
        region = comune_slug(args.region)
        category = comune_slug(args.category) if args.category else None
        banner("COMUNI", f"cities to search: {cities}", C.cyan)
        banner("COMUNI", f"page limit: {args.page_limit}", C.dim)
        requests = filter_requests(region, cities, category, args.page_limit, PAGINEGIALLE_URL)
        scraper = await scrape(fetcher, requests, args.page_limit)
    return save(scraper, args.output)


async def run_search(args) -> int:
    async with Fetcher(concurrency=args.concurrency) as fetcher:
        location = comune_slug(args.location) if args.location else None
        banner("SEARCH", f"{args.query!r} in {location or 'all of Italy'}, page limit: {args.page_limit}", C.cyan)
        requests = search_requests(args.query, location, args.page_limit, PAGINEGIALLE_URL)
        scraper = await scrape(fetcher, requests, args.page_limit)
    return save(scraper, args.output)


def run_merge(args) -> int:
    out = output_path(args.output)
    entries = merge_folder(args.folder_path, exclude=out)
    n = write_csv(entries, out)
    banner("MERGE", f"{n} unique businesses -> {out}", C.green)
    return EXIT_OK

# ------------------------------ MAIN -----------------------------------

def _run_async(coro):
    try:
        import uvloop
    except ImportError:  # not available on Windows
        return asyncio.run(coro)
    return uvloop.run(coro)


def main(argv=None) -> int:
    args = build_parser().parse_args(argv)
    set_debug(args.debug)
    if args.page_limit < 1 or args.concurrency < 1:
        banner("ERROR", "--limit and --concurrency must be positive", C.red, file=sys.stderr)
        return EXIT_FAIL

    t0 = time.time()
    try:
        if args.mode == "merge":
            return run_merge(args)
        runner = run_filter if args.mode == "filter" else run_search
        return _run_async(runner(args))
    except NoResultsError as e:
        banner("EMPTY", str(e), C.red, file=sys.stderr)
        return EXIT_FAIL
    except aiohttp.ClientError as e:
        banner("ERROR", f"request failed: {e}", C.red, file=sys.stderr)
        return EXIT_FAIL
    except OSError as e:
        banner("ERROR", str(e), C.red, file=sys.stderr)
        return EXIT_FAIL
    except (UnicodeDecodeError, csv.Error) as e:
        banner("ERROR", f"unreadable CSV: {e}", C.red, file=sys.stderr)
        return EXIT_FAIL
    except KeyboardInterrupt:
        return EXIT_INTERRUPTED
    finally:
        banner("TIME", f"elapsed: {time.time() - t0:.1f}s", C.dim)


if __name__ == "__main__":
    sys.exit(main())
