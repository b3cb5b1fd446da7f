"""
client/preload.py — Speculative Prefetch Manager
=================================================
Hover-driven page preloading and the blog metadata/content cache.

  PreloadManager   one per process (see get_preload_manager()); owns timers,
                   in-flight fetches and the caches
  PreloadSession   per-consumer handle that tracks its current preload
  PreloadLink      link behaviour: mouse_enter / mouse_leave / click

Blog resources are de-duplicated: concurrent callers for the same slug share
one HTTP request. A 404 yields None and is never cached. Caches have no TTL
and no eviction; clear_blog_cache() resets them.
"""

import asyncio
import logging
import os
from enum import Enum
from typing import Any, Callable, Dict, Optional, Set

import httpx

log = logging.getLogger("portfolio.preload")

DEFAULT_BASE_URL = os.environ.get("PORTFOLIO_BASE_URL", "http://localhost:8000")
DEFAULT_DELAY = 0.1


class PreloadState(str, Enum):
    PENDING = "pending"
    ACTIVE = "active"
    DONE = "done"
    CANCELLED = "cancelled"


class PreloadController:
    """Handle returned by PreloadManager.preload(); cancel() stops that href."""

    def __init__(self, href: str, manager: "PreloadManager"):
        self.href = href
        self._manager = manager

    def cancel(self) -> None:
        self._manager.cancel_preload(self.href)

    def __repr__(self) -> str:
        return f"PreloadController({self.href!r})"


class PreloadManager:
    def __init__(self, base_url: str = None, client: httpx.AsyncClient = None, timeout: float = 10.0):
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(base_url=base_url or DEFAULT_BASE_URL, timeout=timeout)

        # page preloading
        self._tasks: Dict[str, asyncio.Task] = {}
        self._active: Set[str] = set()
        self._controllers: Dict[str, PreloadController] = {}
        self._pages: Dict[str, str] = {}
        self.states: Dict[str, PreloadState] = {}

        # blog cache
        self._metadata_cache: Dict[str, dict] = {}
        self._content_cache: Dict[str, dict] = {}
        self._metadata_requests: Dict[str, asyncio.Task] = {}
        self._content_requests: Dict[str, asyncio.Task] = {}

    # ── Page preloading ──────────────────────────────────────────────────────

    def preload(self, href: str, delay: float = 0.0) -> PreloadController:
        """Schedule a debounced GET of `href`. Must be called from a running loop."""
        self.cancel_preload(href)

        controller = PreloadController(href, self)
        self._tasks[href] = asyncio.get_running_loop().create_task(self._run_preload(href, delay))
        self._controllers[href] = controller
        self.states[href] = PreloadState.PENDING
        return controller

    async def _run_preload(self, href: str, delay: float) -> None:
        if delay > 0:
            await asyncio.sleep(delay)
        if href in self._active:
            return

        self._active.add(href)
        self.states[href] = PreloadState.ACTIVE
        log.info(f"Preloading: {href}")
        try:
            resp = await self._client.get(href)
        except httpx.HTTPError as e:
            log.warning(f"Preload of {href} failed: {e}")
        else:
            if resp.is_success:
                self._pages[href] = resp.text
            else:
                log.warning(f"Preload of {href} returned {resp.status_code}")

        self._active.discard(href)
        self._controllers.pop(href, None)
        if self._tasks.get(href) is asyncio.current_task():
            del self._tasks[href]
        self.states[href] = PreloadState.DONE

    def cancel_preload(self, href: str) -> None:
        task = self._tasks.pop(href, None)
        pending = task is not None and not task.done()
        if pending:
            task.cancel()
        self._active.discard(href)
        self._controllers.pop(href, None)
        if pending:
            self.states[href] = PreloadState.CANCELLED
            log.debug(f"Cancelled preload: {href}")

    def cancel_all(self) -> None:
        for href in list(self._tasks):
            self.cancel_preload(href)
        self._active.clear()
        self._controllers.clear()
        log.debug("Cancelled all preloads")

    def is_preloading(self, href: str) -> bool:
        return href in self._active

    def get_prefetched(self, href: str) -> Optional[str]:
        """Body of a completed page preload, if any."""
        return self._pages.get(href)

    # ── Blog metadata / content ──────────────────────────────────────────────

    async def preload_blog_metadata(self, slug: str) -> Optional[dict]:
        return await self._cached_fetch(slug, "metadata", self._metadata_cache, self._metadata_requests)

    async def load_blog_content(self, slug: str) -> Optional[dict]:
        return await self._cached_fetch(slug, "content", self._content_cache, self._content_requests)

    async def _cached_fetch(self, slug: str, kind: str,
                            cache: Dict[str, dict],
                            requests: Dict[str, asyncio.Task]) -> Optional[dict]:
        if slug in cache:
            log.debug(f"Using cached {kind}: {slug}")
            return cache[slug]

        task = requests.get(slug)
        if task is None:
            task = asyncio.get_running_loop().create_task(self._fetch_blog(slug, kind, cache, requests))
            requests[slug] = task
        else:
            log.debug(f"Joining ongoing {kind} request: {slug}")
        # shield: a cancelled joiner must not cancel the shared request
        return await asyncio.shield(task)

    async def _fetch_blog(self, slug: str, kind: str,
                          cache: Dict[str, dict],
                          requests: Dict[str, asyncio.Task]) -> Optional[dict]:
        try:
            resp = await self._client.get(f"/api/blog/{slug}/{kind}")
            if resp.status_code == 404:
                log.info(f"Blog {kind} not found: {slug}")
                return None
            resp.raise_for_status()
            data = resp.json()
            cache[slug] = data
            log.info(f"Preloaded blog {kind}: {slug} ({len(resp.content)} bytes)")
            return data
        except (httpx.HTTPError, ValueError) as e:
            log.error(f"Failed to load {kind} for {slug}: {e}")
            return None
        finally:
            if requests.get(slug) is asyncio.current_task():
                del requests[slug]

    def get_cached_metadata(self, slug: str) -> Optional[dict]:
        return self._metadata_cache.get(slug)

    def get_cached_content(self, slug: str) -> Optional[dict]:
        return self._content_cache.get(slug)

    def clear_blog_cache(self) -> None:
        self._metadata_cache.clear()
        self._content_cache.clear()
        self._metadata_requests.clear()
        self._content_requests.clear()
        log.info("Cleared blog cache")

    def get_cache_stats(self) -> Dict[str, int]:
        return {
            "metadataCount": len(self._metadata_cache),
            "contentCount": len(self._content_cache),
            "activeMetadataRequests": len(self._metadata_requests),
            "activeContentRequests": len(self._content_requests),
            "pageCount": len(self._pages),
            "activePreloads": len(self._active),
        }

    async def aclose(self) -> None:
        """Cancel everything outstanding and close the owned HTTP client."""
        pending = [t for t in self._tasks.values() if not t.done()]
        pending += [t for t in self._metadata_requests.values() if not t.done()]
        pending += [t for t in self._content_requests.values() if not t.done()]
        self.cancel_all()
        for task in pending:
            task.cancel()
        if pending:
            await asyncio.gather(*pending, return_exceptions=True)
        self._metadata_requests.clear()
        self._content_requests.clear()
        if self._owns_client:
            await self._client.aclose()


class PreloadSession:
    """Per-consumer view of the manager; remembers its own current preload."""

    def __init__(self, manager: PreloadManager = None):
        self.manager = manager or get_preload_manager()
        self._current: Optional[PreloadController] = None

    def start_preload(self, href: str, delay: float = DEFAULT_DELAY) -> PreloadController:
        if self._current:
            self._current.cancel()
        self._current = self.manager.preload(href, delay)
        return self._current

    def cancel_preload(self, href: str = None) -> None:
        if href:
            self.manager.cancel_preload(href)
        elif self._current:
            self._current.cancel()
            self._current = None

    def cancel_all_preloads(self) -> None:
        self.manager.cancel_all()
        self._current = None

    def is_preloading(self, href: str) -> bool:
        return self.manager.is_preloading(href)

    async def preload_blog_metadata(self, slug: str) -> Optional[dict]:
        return await self.manager.preload_blog_metadata(slug)

    async def load_blog_content(self, slug: str) -> Optional[dict]:
        return await self.manager.load_blog_content(slug)

    def get_cached_metadata(self, slug: str) -> Optional[dict]:
        return self.manager.get_cached_metadata(slug)

    def get_cached_content(self, slug: str) -> Optional[dict]:
        return self.manager.get_cached_content(slug)

    def clear_blog_cache(self) -> None:
        self.manager.clear_blog_cache()

    def get_cache_stats(self) -> Dict[str, int]:
        return self.manager.get_cache_stats()


class PreloadLink:
    """
    Pointer behaviour of a prefetching link.

    mouse_enter() starts the page preload (and optionally the blog metadata
    fetch), mouse_leave() cancels it, click() cancels every preload and
    returns whether navigation should proceed.
    """

    def __init__(self,
                 session: PreloadSession,
                 href: str,
                 preload_delay: float = DEFAULT_DELAY,
                 disabled: bool = False,
                 preload_blog_metadata: bool = False,
                 blog_slug: str = None,
                 on_metadata_preloaded: Callable[[dict], Any] = None,
                 on_click: Callable[[], Any] = None):
        self.session = session
        self.href = href
        self.preload_delay = preload_delay
        self.disabled = disabled
        self.preload_blog_metadata = preload_blog_metadata
        self.blog_slug = blog_slug
        self.on_metadata_preloaded = on_metadata_preloaded
        self.on_click = on_click

    async def mouse_enter(self) -> None:
        if self.disabled:
            return
        self.session.start_preload(self.href, self.preload_delay)

        if self.preload_blog_metadata and self.blog_slug:
            metadata = await self.session.preload_blog_metadata(self.blog_slug)
            if metadata is not None and self.on_metadata_preloaded:
                try:
                    self.on_metadata_preloaded(metadata)
                except Exception as e:
                    log.warning(f"Blog metadata callback failed for {self.blog_slug}: {e}")

    def mouse_leave(self) -> None:
        if not self.disabled:
            self.session.cancel_preload(self.href)

    def click(self) -> bool:
        self.session.cancel_all_preloads()
        if self.on_click:
            self.on_click()
        return not self.disabled


_manager: Optional[PreloadManager] = None


def get_preload_manager() -> PreloadManager:
    """Process-wide shared manager, created on first use."""
    global _manager
    if _manager is None:
        _manager = PreloadManager()
    return _manager
