import asyncio
import threading

import pytest
import pytest_asyncio
from aiohttp import web
from aiohttp.test_utils import TestServer, unused_port

EMPTY_PAGE = "<html><body><div class='no-results'>Nessun risultato trovato</div></body></html>"


def _listing(name, address, phone=None):
    phone_html = f'<div class="search-itm__phone"><span>{phone}</span></div>' if phone else ""
    return f"""
<div class="search-itm js-shiny-data-user">
  <h2 class="search-itm__rag"><a href="/padova/{name.lower()}">  {name}  </a></h2>
  <div class="search-itm__adr">
     <span>{address}</span>
  </div>
  {phone_html}
</div>"""


def _result_page(*listings):
    return "<html><body><section class='search-results'>" + "".join(listings) + "</section></body></html>"


@pytest.fixture
def listing():
    return _listing


@pytest.fixture
def result_page():
    return _result_page


@pytest.fixture
def empty_page():
    return EMPTY_PAGE


@pytest_asyncio.fixture
async def serve():
    """Start an aiohttp.web app on localhost and return its base URL."""
    servers = []

    async def _serve(app):
        server = TestServer(app)
        await server.start_server()
        servers.append(server)
        return f"http://{server.host}:{server.port}"

    yield _serve
    for server in servers:
        await server.close()


@pytest.fixture
def serve_in_thread():
    """Serve an aiohttp.web app from its own thread, for code that runs its own event loop."""
    running = []

    def _serve(app):
        loop = asyncio.new_event_loop()
        runner = web.AppRunner(app)
        loop.run_until_complete(runner.setup())
        port = unused_port()
        loop.run_until_complete(web.TCPSite(runner, "127.0.0.1", port).start())
        thread = threading.Thread(target=loop.run_forever, daemon=True)
        thread.start()
        running.append((loop, runner, thread))
        return f"http://127.0.0.1:{port}"

    yield _serve
    for loop, runner, thread in running:
        asyncio.run_coroutine_threadsafe(runner.cleanup(), loop).result(timeout=10)
        loop.call_soon_threadsafe(loop.stop)
        thread.join(timeout=10)
        loop.close()
