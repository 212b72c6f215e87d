from contextlib import asynccontextmanager
from unittest.mock import AsyncMock

import pytest
from aiohttp import test_utils, web

from core.config import BoardConfig
from core.exceptions import BoardError, BoardRateLimitError
from core.models.thread import MediaDescriptor, Thread
from integrations.board_client import BoardClient

CATALOG = [
    {"page": 1, "threads": [
        {"no": 100, "time": 1, "sub": "First", "com": "hello", "replies": 12, "last_replies": [{"no": 101}]},
        {"no": 200, "time": 2, "com": "second", "replies": 3, "sticky": 1},
    ]},
    {"page": 2, "threads": [{"no": 300, "time": 3, "com": "third", "replies": 0}]},
]

THREAD_100 = {"posts": [
    {"no": 100, "resto": 0, "time": 1, "sub": "First", "com": "hello", "replies": 2,
     "tim": 1700000000001, "ext": ".png", "filename": "lead", "fsize": 3, "w": 1, "h": 1},
    {"no": 101, "resto": 100, "time": 2, "com": "&gt;&gt;100 hi", "country": "FI", "country_name": "Finland"},
    {"no": 102, "resto": 100, "time": 3},
]}


@asynccontextmanager
async def board_server(handlers):
    app = web.Application()
    for path, handler in handlers.items():
        app.router.add_get(path, handler)
    server = test_utils.TestServer(app)
    await server.start_server()
    try:
        yield str(server.make_url("/")).rstrip("/")
    finally:
        await server.close()


def client_for(base_url: str, **overrides) -> BoardClient:
    config = BoardConfig(api_base=base_url, media_base=base_url, board="pol", **overrides)
    return BoardClient(config, sleep=AsyncMock())


async def catalog(request):
    return web.json_response(CATALOG)


async def thread_100(request):
    return web.json_response(THREAD_100)


async def missing(request):
    return web.Response(status=404)


@pytest.mark.asyncio
async def test_catalog_is_flattened():
    async with board_server({"/pol/catalog.json": catalog}) as base:
        async with client_for(base) as client:
            threads = await client.get_catalog()

    assert [t.no for t in threads] == [100, 200, 300]
    assert threads[0].replies == 12
    assert threads[0].posts == []
    assert threads[1].sticky is True


@pytest.mark.asyncio
async def test_get_thread_and_pruned_thread():
    handlers = {"/pol/thread/100.json": thread_100, "/pol/thread/555.json": missing}
    async with board_server(handlers) as base:
        async with client_for(base) as client:
            thread = await client.get_thread(100)
            pruned = await client.get_thread(555)

    assert pruned is None
    assert thread.sub == "First"
    assert [p.no for p in thread.posts] == [101, 102]
    assert thread.posts[0].country_name == "Finland"
    assert thread.media.ext == ".png"


@pytest.mark.asyncio
async def test_rate_limit_backs_off_and_retries():
    hits = []

    async def flaky(request):
        hits.append(request.path)
        if len(hits) == 1:
            return web.Response(status=429)
        return web.json_response(CATALOG)

    async with board_server({"/pol/catalog.json": flaky}) as base:
        client = client_for(base, rate_limit_backoff=(30.0, 40.0))
        async with client:
            threads = await client.get_catalog()

    assert len(hits) == 2
    assert len(threads) == 3
    wait = client._sleep.await_args.args[0]
    assert 30.0 <= wait <= 40.0


@pytest.mark.asyncio
async def test_rate_limit_gives_up_after_retry_budget():
    async def always_limited(request):
        return web.Response(status=429)

    async with board_server({"/pol/catalog.json": always_limited}) as base:
        client = client_for(base, max_rate_limit_retries=2)
        async with client:
            with pytest.raises(BoardRateLimitError):
                await client.get_catalog()

    assert client._sleep.await_count == 2


@pytest.mark.asyncio
async def test_server_error_raises_board_error():
    async def broken(request):
        return web.Response(status=500)

    async with board_server({"/pol/catalog.json": broken}) as base:
        async with client_for(base) as client:
            with pytest.raises(BoardError) as excinfo:
                await client.get_catalog()

    assert excinfo.value.context["status"] == 500


@pytest.mark.asyncio
async def test_download_media_skips_video(tmp_path):
    async def image(request):
        return web.Response(body=b"png")

    thread = Thread(no=100, media=MediaDescriptor(tim=1700000000001, ext=".png"))
    video = Thread(no=200, media=MediaDescriptor(tim=1700000000002, ext=".webm"))

    async with board_server({"/pol/1700000000001.png": image}) as base:
        async with client_for(base) as client:
            saved = await client.download_media(thread, tmp_path)
            skipped = await client.download_media(video, tmp_path)

    assert saved == tmp_path / "100.png"
    assert saved.read_bytes() == b"png"
    assert skipped is None


@pytest.mark.asyncio
async def test_courtesy_delay_within_range():
    client = client_for("http://unused", courtesy_delay=(0.25, 0.75))

    await client.courtesy_delay()

    wait = client._sleep.await_args.args[0]
    assert 0.25 <= wait <= 0.75


@pytest.mark.asyncio
async def test_client_requires_context_manager():
    with pytest.raises(RuntimeError):
        await client_for("http://unused").get_catalog()


@pytest.mark.asyncio
async def test_failed_media_write_leaves_no_partial_file(tmp_path):
    async def image(request):
        return web.Response(body=b"png")

    blocked = tmp_path / "100.png"
    blocked.mkdir()
    (blocked / "keep").write_bytes(b"")
    thread = Thread(no=100, media=MediaDescriptor(tim=1700000000001, ext=".png"))

    async with board_server({"/pol/1700000000001.png": image}) as base:
        async with client_for(base) as client:
            with pytest.raises(OSError):
                await client.download_media(thread, tmp_path)

    assert not (tmp_path / "100.png.part").exists()
    assert blocked.is_dir()
