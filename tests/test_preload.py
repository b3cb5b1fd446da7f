# Prefetch manager tests
# Dependent files: client/preload.py, client/debug.py
#
# All HTTP goes through httpx.MockTransport; each test drives its own event
# loop with asyncio.run().

import asyncio

import httpx

from client.debug import format_cache_stats
from client.preload import PreloadLink, PreloadManager, PreloadSession, PreloadState

METADATA = {"title": "Hello", "slug": "hello", "metadata": {"views": 3}}
CONTENT = {"title": "Hello", "content": "# Hello"}


class FakeSite:
    """Async handler that counts requests and can be slowed down."""

    def __init__(self, delay: float = 0.0):
        self.delay = delay
        self.paths = []

    async def __call__(self, request: httpx.Request) -> httpx.Response:
        self.paths.append(request.url.path)
        if self.delay:
            await asyncio.sleep(self.delay)
        path = request.url.path
        if path == "/api/blog/hello/metadata":
            return httpx.Response(200, json=METADATA)
        if path == "/api/blog/hello/content":
            return httpx.Response(200, json=CONTENT)
        if path == "/api/blog/broken/metadata":
            return httpx.Response(500, json={"error": "boom"})
        if path.startswith("/api/blog/"):
            return httpx.Response(404, json={"error": "Blog post not found"})
        return httpx.Response(200, text=f"<html>{path}</html>")


def _manager(site: FakeSite) -> PreloadManager:
    client = httpx.AsyncClient(base_url="http://portfolio.test", transport=httpx.MockTransport(site))
    return PreloadManager(client=client)


async def _close(manager: PreloadManager) -> None:
    await manager.aclose()
    await manager._client.aclose()


# ── Blog cache ────────────────────────────────────────────────────────────────

def test_concurrent_metadata_requests_share_one_fetch():
    site = FakeSite(delay=0.02)

    async def scenario():
        manager = _manager(site)
        try:
            first, second = await asyncio.gather(
                manager.preload_blog_metadata("hello"),
                manager.preload_blog_metadata("hello"),
            )
            assert first == second == METADATA
            # Served from cache now
            assert await manager.preload_blog_metadata("hello") == METADATA
            return manager.get_cache_stats()
        finally:
            await _close(manager)

    stats = asyncio.run(scenario())
    assert site.paths == ["/api/blog/hello/metadata"]
    assert stats["metadataCount"] == 1
    assert stats["activeMetadataRequests"] == 0


def test_cancelled_joiner_leaves_shared_fetch_running():
    site = FakeSite(delay=0.05)

    async def scenario():
        manager = _manager(site)
        try:
            first = asyncio.ensure_future(manager.preload_blog_metadata("hello"))
            await asyncio.sleep(0.01)
            joiner = asyncio.ensure_future(manager.preload_blog_metadata("hello"))
            await asyncio.sleep(0.01)
            joiner.cancel()
            await asyncio.gather(joiner, return_exceptions=True)
            return await first, joiner.cancelled(), manager.get_cached_metadata("hello")
        finally:
            await _close(manager)

    result, joiner_cancelled, cached = asyncio.run(scenario())
    assert joiner_cancelled is True
    assert result == cached == METADATA
    assert site.paths == ["/api/blog/hello/metadata"]


def test_missing_post_is_not_cached():
    site = FakeSite()

    async def scenario():
        manager = _manager(site)
        try:
            assert await manager.preload_blog_metadata("ghost") is None
            assert await manager.preload_blog_metadata("ghost") is None
            return manager.get_cached_metadata("ghost")
        finally:
            await _close(manager)

    assert asyncio.run(scenario()) is None
    assert len(site.paths) == 2


def test_server_error_yields_none():
    async def scenario():
        manager = _manager(FakeSite())
        try:
            return await manager.preload_blog_metadata("broken"), manager.get_cache_stats()
        finally:
            await _close(manager)

    result, stats = asyncio.run(scenario())
    assert result is None
    assert stats["metadataCount"] == 0


def test_content_cache_and_clear():
    async def scenario():
        manager = _manager(FakeSite())
        try:
            assert await manager.load_blog_content("hello") == CONTENT
            assert manager.get_cached_content("hello") == CONTENT
            manager.clear_blog_cache()
            return manager.get_cached_content("hello")
        finally:
            await _close(manager)

    assert asyncio.run(scenario()) is None


# ── Page preloading ───────────────────────────────────────────────────────────

def test_preload_fetches_after_delay():
    site = FakeSite()

    async def scenario():
        manager = _manager(site)
        try:
            manager.preload("/blog/hello", delay=0.01)
            assert manager.states["/blog/hello"] == PreloadState.PENDING
            await asyncio.sleep(0.05)
            return manager.states["/blog/hello"], manager.get_prefetched("/blog/hello")
        finally:
            await _close(manager)

    state, body = asyncio.run(scenario())
    assert state == PreloadState.DONE
    assert body == "<html>/blog/hello</html>"


def test_cancel_before_delay_skips_request():
    site = FakeSite()

    async def scenario():
        manager = _manager(site)
        try:
            controller = manager.preload("/projects", delay=0.05)
            controller.cancel()
            await asyncio.sleep(0.08)
            return manager.states["/projects"], manager.is_preloading("/projects")
        finally:
            await _close(manager)

    state, preloading = asyncio.run(scenario())
    assert state == PreloadState.CANCELLED
    assert preloading is False
    assert site.paths == []


def test_cancel_during_fetch_marks_cancelled():
    site = FakeSite(delay=0.2)

    async def scenario():
        manager = _manager(site)
        try:
            controller = manager.preload("/slow", delay=0)
            for _ in range(100):
                if manager.is_preloading("/slow"):
                    break
                await asyncio.sleep(0.001)
            assert manager.states["/slow"] == PreloadState.ACTIVE
            controller.cancel()
            await asyncio.sleep(0.01)
            return manager.states["/slow"], manager.is_preloading("/slow"), manager.get_prefetched("/slow")
        finally:
            await _close(manager)

    state, preloading, body = asyncio.run(scenario())
    assert state == PreloadState.CANCELLED
    assert preloading is False
    assert body is None
    assert site.paths == ["/slow"]


def test_session_replaces_its_current_preload():
    site = FakeSite()

    async def scenario():
        manager = _manager(site)
        session = PreloadSession(manager)
        try:
            session.start_preload("/a", delay=0.02)
            session.start_preload("/b", delay=0.02)
            await asyncio.sleep(0.06)
            return dict(manager.states)
        finally:
            await _close(manager)

    states = asyncio.run(scenario())
    assert states["/a"] == PreloadState.CANCELLED
    assert states["/b"] == PreloadState.DONE
    assert site.paths == ["/b"]


# ── Link behaviour ────────────────────────────────────────────────────────────

def test_link_hover_preloads_metadata_and_calls_back():
    site = FakeSite()
    received = []

    async def scenario():
        manager = _manager(site)
        link = PreloadLink(PreloadSession(manager), "/blog/hello", preload_delay=0,
                           preload_blog_metadata=True, blog_slug="hello",
                           on_metadata_preloaded=received.append)
        try:
            await link.mouse_enter()
            await asyncio.sleep(0.01)
            return manager.get_prefetched("/blog/hello")
        finally:
            await _close(manager)

    assert asyncio.run(scenario()) is not None
    assert received == [METADATA]


def test_link_leave_and_click():
    clicks = []

    async def scenario():
        manager = _manager(FakeSite())
        link = PreloadLink(PreloadSession(manager), "/about", preload_delay=0.05,
                           on_click=lambda: clicks.append(True))
        try:
            await link.mouse_enter()
            assert manager.states["/about"] == PreloadState.PENDING
            link.mouse_leave()
            assert manager.states["/about"] == PreloadState.CANCELLED

            await link.mouse_enter()
            return link.click(), manager.states["/about"]
        finally:
            await _close(manager)

    proceed, state = asyncio.run(scenario())
    assert proceed is True
    assert state == PreloadState.CANCELLED
    assert clicks == [True]


def test_disabled_link_does_nothing():
    site = FakeSite()

    async def scenario():
        manager = _manager(site)
        link = PreloadLink(PreloadSession(manager), "/x", preload_delay=0, disabled=True)
        try:
            await link.mouse_enter()
            await asyncio.sleep(0.01)
            return link.click()
        finally:
            await _close(manager)

    assert asyncio.run(scenario()) is False
    assert site.paths == []


# ── Debug rendering ───────────────────────────────────────────────────────────

def test_format_cache_stats():
    text = format_cache_stats({
        "metadataCount": 4, "contentCount": 2,
        "activeMetadataRequests": 1, "activeContentRequests": 1,
        "pageCount": 3, "activePreloads": 0,
    })
    lines = text.splitlines()
    assert lines[0] == "Cache Debug"
    assert lines[1].split() == ["Metadata:", "4"]
    assert lines[3].split() == ["Active", "Requests:", "2"]
    assert len(lines) == 6
