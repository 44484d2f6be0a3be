"""Page rendering through a headless browser.

Fetchers get a ``PageRenderer`` injected instead of reaching for a global
browser. ``BrowserRenderer`` is the real implementation: it owns one
browser-use ``BrowserSession`` that is started lazily and shared by every
render, while each render works in its own tab.

Key implementation detail: all page work uses session-scoped CDP commands
(``session_id=...``) on a tab created through ``Target.createTarget``, so
concurrent renders never navigate each other's pages and browser-use's
watchdogs are bypassed.
"""

import asyncio
import json
import logging
from typing import TYPE_CHECKING, Any, Protocol, runtime_checkable

from .config import BrowserSettings
from .exceptions import BrowserError

if TYPE_CHECKING:
    from browser_use.browser.session import BrowserSession, CDPSession

logger = logging.getLogger(__name__)

# Resource types map to URL patterns for Network.setBlockedURLs
RESOURCE_URL_PATTERNS: dict[str, list[str]] = {
    "image": ["*.png", "*.jpg", "*.jpeg", "*.gif", "*.webp", "*.svg", "*.ico", "*.avif"],
    "stylesheet": ["*.css"],
    "font": ["*.woff", "*.woff2", "*.ttf", "*.otf", "*.eot"],
    "media": ["*.mp4", "*.webm", "*.mp3", "*.m4a", "*.m3u8", "*.ogg"],
}

NAVIGATOR_PATCH = """
Object.defineProperty(navigator, 'webdriver', { get: () => false });
Object.defineProperty(navigator, 'plugins', { get: () => [1, 2, 3, 4, 5] });
Object.defineProperty(navigator, 'languages', { get: () => ['en-US', 'en'] });
"""

READY_POLL_INTERVAL = 0.25


def blocked_url_patterns(resource_types: list[str]) -> list[str]:
    """Translate resource type names into URL patterns, ignoring unknown types."""
    patterns: list[str] = []
    for resource_type in resource_types:
        for pattern in RESOURCE_URL_PATTERNS.get(resource_type.lower(), []):
            if pattern not in patterns:
                patterns.append(pattern)
    return patterns


@runtime_checkable
class PageRenderer(Protocol):
    """Turns a URL into the HTML of the rendered document."""

    async def render(self, url: str, *, allow_images: bool = False, settle_seconds: float = 0.0) -> str:
        """Render ``url`` and return ``document.documentElement.outerHTML``.

        Raises:
            BrowserError: If navigation, loading or extraction fails.
        """
        ...

    async def close(self) -> None:
        """Release the browser resources held by the renderer."""
        ...


class BrowserRenderer:
    """PageRenderer backed by a shared browser-use BrowserSession.

    Usage:
        async with BrowserRenderer(settings.browser) as renderer:
            html = await renderer.render("https://example.com")
    """

    def __init__(self, browser_settings: BrowserSettings):
        self.settings = browser_settings
        self._session: "BrowserSession | None" = None
        self._lock = asyncio.Lock()

    @property
    def started(self) -> bool:
        return self._session is not None

    async def __aenter__(self) -> "BrowserRenderer":
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.close()

    async def _get_session(self) -> "BrowserSession":
        """Start the shared browser session on first use."""
        async with self._lock:
            if self._session is not None:
                return self._session

            from browser_use import BrowserProfile
            from browser_use.browser.profile import ProxySettings
            from browser_use.browser.session import BrowserSession

            proxy = None
            if self.settings.proxy_server:
                proxy = ProxySettings(server=self.settings.proxy_server, bypass=self.settings.proxy_bypass)
            profile = BrowserProfile(headless=self.settings.headless, proxy=proxy)

            session = BrowserSession(browser_profile=profile)
            try:
                await session.start()
            except Exception as e:
                raise BrowserError(f"Failed to start browser: {e}") from e

            logger.info(f"Browser session started (headless={self.settings.headless})")
            self._session = session
            return session

    async def close(self) -> None:
        """Stop the browser session; a later render starts a new one."""
        async with self._lock:
            session, self._session = self._session, None
        if session is None:
            return
        try:
            await session.stop()
            logger.info("Browser session stopped")
        except Exception as e:
            logger.warning(f"Error while stopping browser session: {e}")

    async def render(self, url: str, *, allow_images: bool = False, settle_seconds: float = 0.0) -> str:
        """Render ``url`` in a fresh tab and return the document HTML."""
        session = await self._get_session()

        try:
            created = await session.cdp_client.send.Target.createTarget(params={"url": "about:blank"})
            target_id = created["targetId"]
        except Exception as e:
            raise BrowserError(f"Failed to open tab: {e}") from e

        try:
            cdp_session = await session.get_or_create_cdp_session(target_id=target_id, focus=False)
            await self._prepare_tab(session, cdp_session, allow_images)
            return await asyncio.wait_for(
                self._load(session, cdp_session, url, settle_seconds),
                timeout=self.settings.timeout + settle_seconds,
            )
        except BrowserError:
            raise
        except TimeoutError as e:
            raise BrowserError(f"Timed out after {self.settings.timeout}s loading {url}") from e
        except Exception as e:
            raise BrowserError(f"Rendering {url} failed: {e}") from e
        finally:
            try:
                await session.cdp_client.send.Target.closeTarget(params={"targetId": target_id})
            except Exception as e:
                logger.debug(f"Target.closeTarget: {e}")

    async def _prepare_tab(self, session: "BrowserSession", cdp_session: "CDPSession", allow_images: bool) -> None:
        """Apply user agent, viewport, navigator patch and resource blocking to a tab."""
        send = session.cdp_client.send
        sid = cdp_session.session_id

        await send.Page.enable(session_id=sid)
        await send.Runtime.enable(session_id=sid)
        await send.Network.enable(session_id=sid)

        await send.Network.setUserAgentOverride(params={"userAgent": self.settings.user_agent}, session_id=sid)
        await send.Emulation.setDeviceMetricsOverride(
            params={
                "width": self.settings.viewport_width,
                "height": self.settings.viewport_height,
                "deviceScaleFactor": 1,
                "mobile": False,
            },
            session_id=sid,
        )
        await send.Page.addScriptToEvaluateOnNewDocument(params={"source": NAVIGATOR_PATCH}, session_id=sid)

        blocked = self.settings.block_resources
        if allow_images:
            blocked = [r for r in blocked if r.lower() != "image"]
        patterns = blocked_url_patterns(blocked)
        if patterns:
            await send.Network.setBlockedURLs(params={"urls": patterns}, session_id=sid)

    async def _load(self, session: "BrowserSession", cdp_session: "CDPSession", url: str, settle_seconds: float) -> str:
        send = session.cdp_client.send
        sid = cdp_session.session_id

        logger.debug(f"Navigating to {url}")
        nav_result = await send.Page.navigate(params={"url": url, "transitionType": "address_bar"}, session_id=sid)
        if nav_result.get("errorText"):
            raise BrowserError(f"Navigation failed: {nav_result['errorText']}")

        while await self._evaluate(session, cdp_session, "document.readyState") != "complete":
            await asyncio.sleep(READY_POLL_INTERVAL)

        if settle_seconds > 0:
            # Allow dynamic content to render
            await asyncio.sleep(settle_seconds)

        html = await self._evaluate(session, cdp_session, "document.documentElement.outerHTML")
        if not isinstance(html, str):
            raise BrowserError(f"Unexpected document content: {json.dumps(html)[:100]}")
        return html

    async def _evaluate(self, session: "BrowserSession", cdp_session: "CDPSession", expression: str) -> Any:
        eval_result = await session.cdp_client.send.Runtime.evaluate(
            params={"expression": expression, "returnByValue": True, "awaitPromise": False},
            session_id=cdp_session.session_id,
        )
        if eval_result.get("exceptionDetails"):
            error = eval_result["exceptionDetails"].get("text", "Unknown error")
            raise BrowserError(f"Evaluation failed: {error}")
        return eval_result.get("result", {}).get("value")
