"""Browser-driven acquisition of Claude.ai plan usage.

Drives a persistent Chromium profile through Playwright: validates the
stored login, loads the usage page while RequestObserver records the API
calls it makes, then replays the captured usage request from inside the
page. When replay or normalization fails the rendered page text is scraped
instead.
"""

import asyncio
import logging
import re
from datetime import datetime, timezone
from typing import Any, Callable

from playwright.async_api import TimeoutError as PlaywrightTimeoutError
from playwright.async_api import async_playwright

from claude_usage_monitor.constants import (
    BASE_URL,
    LOGIN_URL,
    LOGIN_WAIT_S,
    PAGE_LOAD_TIMEOUT_S,
    SETTLE_DELAY_S,
    USAGE_URL,
    USER_AGENT,
    VIEWPORT,
)
from claude_usage_monitor.context import MonitorContext
from claude_usage_monitor.errors import (
    BrowserLaunchError,
    ChromeNotFoundError,
    LayoutChangedError,
    LoginTimeoutError,
    PageLoadTimeoutError,
)
from claude_usage_monitor.services.api_schema import get_schema_info, normalize_usage
from claude_usage_monitor.services.authenticator import BASE_DOMAIN, SessionAuthenticator
from claude_usage_monitor.services.request_observer import RequestObserver
from claude_usage_monitor.types.auth import ClearResult
from claude_usage_monitor.types.usage import UsageRecord, UsageWindow
from claude_usage_monitor.utils.browser_env import find_chrome, find_free_port

logger = logging.getLogger(__name__)

CHROME_ARGS = (
    "--no-sandbox",
    "--disable-setuid-sandbox",
    "--disable-dev-shm-usage",
    "--disable-blink-features=AutomationControlled",
)

# Substrings Chromium uses when another process holds the profile lock
PROFILE_LOCK_MARKERS = ("already running", "ProcessSingleton", "SingletonLock")

USAGE_PERCENT_RE = re.compile(r"(\d+)%\s*used", re.IGNORECASE)
RESET_PHRASE_RE = re.compile(r"Resets?\s+in\s+([^\n]+)", re.IGNORECASE)

_REPLAY_JS = """
async ([endpoint, headers, cookieStr]) => {
    const resp = await fetch(endpoint, {
        method: 'GET',
        headers: { ...headers, 'Cookie': cookieStr }
    });
    if (!resp.ok) throw new Error(`API request failed: ${resp.status}`);
    return await resp.json();
}
"""

_OPTIONAL_REPLAY_JS = """
async ([endpoint, headers, cookieStr]) => {
    const resp = await fetch(endpoint, {
        method: 'GET',
        headers: { ...headers, 'Cookie': cookieStr }
    });
    return resp.ok ? await resp.json() : null;
}
"""


def parse_usage_text(text: str) -> tuple[int | None, str]:
    """Pull the usage percent and reset phrase out of rendered page text."""
    usage_match = USAGE_PERCENT_RE.search(text or "")
    reset_match = RESET_PHRASE_RE.search(text or "")
    percent = int(usage_match.group(1)) if usage_match else None
    reset_time = reset_match.group(1).strip() if reset_match else ""
    return percent, reset_time or "Unknown"


class UsageFetcher:
    """Owns one browser lifetime at a time.

    Not safe for concurrent use: the caller must not start a second
    operation while one is in flight.
    """

    def __init__(
        self,
        context: MonitorContext | None = None,
        authenticator: SessionAuthenticator | None = None,
        on_login_required: Callable[[], None] | None = None,
        playwright_factory: Callable[[], Any] = async_playwright,
        chrome_finder: Callable[[], str | None] = find_chrome,
        settle_delay_s: float = SETTLE_DELAY_S,
        login_wait_s: float = LOGIN_WAIT_S,
    ):
        self._context = context or MonitorContext()
        config = self._context.config
        self._session_dir = config.session_dir
        self.auth = authenticator or SessionAuthenticator(config.session_dir, context=self._context)
        self.observer = RequestObserver(context=self._context)
        self.on_login_required = on_login_required
        self._playwright_factory = playwright_factory
        self._chrome_finder = chrome_finder
        self._settle_delay_s = settle_delay_s
        self._login_wait_s = login_wait_s

        self._playwright: Any = None
        self._browser: Any = None  # only set for CDP-attached browsers
        self._browser_context: Any = None
        self._page: Any = None
        self._port: int | None = None
        self._is_connected_browser = False
        self._context_closed = False

    @property
    def is_initialized(self) -> bool:
        return self._page is not None and not self._context_closed

    @property
    def is_connected_browser(self) -> bool:
        return self._is_connected_browser

    @property
    def debugging_port(self) -> int | None:
        return self._port

    # ------------------------------------------------------------------
    # Browser lifetime
    # ------------------------------------------------------------------

    async def initialize(self, force_headed: bool = False):
        """Launch (or reuse) the browser on the persistent profile."""
        if self.is_initialized:
            self._context.debug("Reusing live browser")
            return

        chrome_path = self._chrome_finder()
        if not chrome_path:
            raise ChromeNotFoundError()

        headless = False if force_headed else self._context.config.headless
        await self._launch(chrome_path, headless)

    async def connect_existing(self, port: int) -> bool:
        """Attach over CDP to a browser already listening on port.

        Cleanup of an attached browser disconnects rather than closing it.
        """
        await self._ensure_playwright()
        endpoint = f"http://127.0.0.1:{port}"
        try:
            browser = await self._playwright.chromium.connect_over_cdp(endpoint)
        except Exception as e:
            logger.info("Could not connect to existing browser: %s", e)
            return False

        contexts = browser.contexts
        browser_context = contexts[0] if contexts else await browser.new_context()
        pages = browser_context.pages
        page = next((p for p in pages if BASE_DOMAIN in (p.url or "")), None)
        if page is None:
            page = pages[0] if pages else await browser_context.new_page()

        self._browser = browser
        self._is_connected_browser = True
        self._port = port
        self._adopt(browser_context, page)
        logger.info("Connected to existing browser on port %d", port)
        return True

    async def close(self):
        """Close a launched browser, or disconnect from an attached one."""
        try:
            if self._is_connected_browser and self._browser is not None:
                # close() on a CDP connection detaches without killing the process
                await self._browser.close()
                self._context.debug("Disconnected from shared browser")
            elif self._browser_context is not None and not self._context_closed:
                await self._browser_context.close()
                self._context.debug("Closed browser instance")
        except Exception as e:
            logger.warning("Error closing browser: %s", e)
        finally:
            self._browser = None
            self._browser_context = None
            self._page = None
            self._is_connected_browser = False
            self._context_closed = False
            self.auth.attach(None, None)
            await self._stop_playwright()

    async def reset(self) -> dict:
        """Close the browser and forget every captured endpoint."""
        self._context.debug("=== RESET CONNECTION (%s) ===", datetime.now().isoformat(timespec="seconds"))
        await self.close()
        self.observer.clear()
        self._context.debug("All captured API endpoints cleared")
        return {"success": True, "message": "Connection reset successfully"}

    async def clear_session(self) -> ClearResult:
        await self.reset()
        return self.auth.clear_session()

    async def remove_profile_locks(self) -> ClearResult:
        """Close our own browser, then delete the lock files a crashed one left behind."""
        await self.close()
        return self.auth.remove_profile_locks()

    async def force_open_browser(self) -> dict:
        """Tear down and relaunch headed on the login page."""
        self._context.debug("=== FORCE OPEN BROWSER ===")
        try:
            await self._open_login_window()
        except Exception as e:
            self._context.debug("Failed to open browser: %s", e)
            return {"success": False, "message": f"Failed to open browser: {e}"}
        return {"success": True, "message": "Browser opened. Please log in to Claude.ai."}

    # ------------------------------------------------------------------
    # Login
    # ------------------------------------------------------------------

    async def ensure_logged_in(self):
        """Leave the page on the usage page with a valid session.

        Raises LoginTimeoutError if the user does not log in within the wait.
        """
        if not self.is_initialized:
            await self.initialize()

        validation = await self.auth.validate_session()
        if validation.valid:
            self._context.debug("Auth: Session valid (fast path)")
            await self._goto(USAGE_URL, "networkidle")
            return

        self._context.debug("Auth: Session invalid (%s), need login", validation.reason)
        if self.on_login_required is not None:
            self.on_login_required()

        await self._open_login_window()
        logged_in = await self.auth.wait_for_login(max_wait=self._login_wait_s)
        if not logged_in:
            raise LoginTimeoutError("Login timeout. Please try again and complete the login process.")

        logger.info("Login successful, relaunching with configured visibility")
        await self.close()
        await self.initialize()
        await self._goto(USAGE_URL, "networkidle")

    async def _open_login_window(self):
        await self.close()
        chrome_path = self._chrome_finder()
        if not chrome_path:
            raise ChromeNotFoundError()
        await self._launch(chrome_path, headless=False)
        await self._goto(LOGIN_URL, "networkidle")

    # ------------------------------------------------------------------
    # Fetch
    # ------------------------------------------------------------------

    async def fetch(self) -> UsageRecord:
        """One complete acquisition cycle. The browser is always closed afterwards."""
        try:
            await self.initialize()
            await self.ensure_logged_in()
            return await self.fetch_usage_data()
        finally:
            await self.close()

    async def fetch_usage_data(self) -> UsageRecord:
        await self._goto(USAGE_URL, "networkidle")
        await asyncio.sleep(self._settle_delay_s)

        summary = self.observer.summary()
        self._context.debug(
            "=== FETCH ATTEMPT (%s) === usage:%s credits:%s overage:%s",
            datetime.now().isoformat(timespec="seconds"),
            summary["hasApiEndpoint"], summary["hasCreditsEndpoint"], summary["hasOverageEndpoint"],
        )

        if self.observer.usage is not None:
            try:
                return await self._replay_api()
            except Exception as e:
                logger.info("API call failed, falling back to page text: %s", e)
                self._context.debug("Direct API fetch FAILED: %s", e)

        return await self._scrape_page_text()

    async def _replay_api(self) -> UsageRecord:
        captured = self.observer.usage
        cookie_string = await self._cookie_header()

        payload = await self._page.evaluate(
            _REPLAY_JS, [captured.url, captured.headers, cookie_string]
        )
        self._context.debug("Direct API fetch SUCCESS")

        credits = await self._optional_replay(self.observer.credits_url, captured.headers, cookie_string)
        overage = await self._optional_replay(self.observer.overage_url, captured.headers, cookie_string)
        return normalize_usage(payload, credits=credits, overage=overage)

    async def _optional_replay(self, url: str | None, headers: dict, cookie_string: str):
        if not url:
            return None
        try:
            return await self._page.evaluate(_OPTIONAL_REPLAY_JS, [url, headers, cookie_string])
        except Exception as e:
            self._context.debug("Secondary fetch of %s failed: %s", url, e)
            return None

    async def _scrape_page_text(self) -> UsageRecord:
        self._context.debug("Falling back to page text scraping...")
        text = await self._page.inner_text("body")
        percent, reset_time = parse_usage_text(text)
        if percent is None:
            raise LayoutChangedError("Could not find usage percentage. Page layout may have changed.")
        return UsageRecord(
            five_hour=UsageWindow(utilization=percent, reset_time=reset_time),
            fetched_at=datetime.now(timezone.utc),
            source="html",
        )

    async def _cookie_header(self) -> str:
        cookies = await self._browser_context.cookies(BASE_URL)
        return "; ".join(f"{c['name']}={c['value']}" for c in cookies)

    # ------------------------------------------------------------------
    # Diagnostics
    # ------------------------------------------------------------------

    def diagnostics(self) -> dict:
        schema = get_schema_info()
        return {
            "isInitialized": self.is_initialized,
            "isConnectedBrowser": self._is_connected_browser,
            "hasBrowser": self._browser_context is not None,
            "hasPage": self._page is not None,
            "debuggingPort": self._port,
            **self.observer.summary(),
            **self.auth.diagnostics(),
            "schemaVersion": schema["version"],
            "schemaFields": schema["usageFields"],
            "schemaEndpoints": schema["endpoints"],
        }

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    async def _ensure_playwright(self):
        if self._playwright is None:
            self._playwright = await self._playwright_factory().start()

    async def _stop_playwright(self):
        if self._playwright is None:
            return
        try:
            await self._playwright.stop()
        except Exception as e:
            logger.debug("Error stopping Playwright: %s", e)
        self._playwright = None

    async def _launch(self, chrome_path: str, headless: bool):
        await self._ensure_playwright()
        # Fresh port per launch so concurrent instances never collide
        self._port = find_free_port()
        self._context.debug("Launching %s Chrome (port %d): %s",
                            "headless" if headless else "headed", self._port, chrome_path)
        try:
            browser_context = await self._playwright.chromium.launch_persistent_context(
                str(self._session_dir),
                headless=headless,
                executable_path=chrome_path,
                args=[*CHROME_ARGS, f"--remote-debugging-port={self._port}"],
                viewport=VIEWPORT,
                user_agent=USER_AGENT,
            )
        except Exception as e:
            await self._stop_playwright()
            message = str(e)
            if any(marker in message for marker in PROFILE_LOCK_MARKERS):
                raise BrowserLaunchError(
                    f"Browser profile {self._session_dir} is in use by another process. "
                    "Close other monitor windows, or remove stale profile locks if none are running, and retry."
                ) from e
            raise BrowserLaunchError(f"Failed to launch browser: {message}") from e

        pages = browser_context.pages
        page = pages[0] if pages else await browser_context.new_page()
        self._is_connected_browser = False
        self._adopt(browser_context, page)
        logger.info("Launched new browser instance")

    def _adopt(self, browser_context, page):
        self._browser_context = browser_context
        self._page = page
        self._context_closed = False
        browser_context.on("close", self._on_context_closed)
        # Captures from an earlier page must never be replayed on this one
        self.observer.clear()
        self.observer.attach(page)
        self.auth.attach(page, browser_context)

    def _on_context_closed(self, *_):
        self._context_closed = True

    async def _goto(self, url: str, wait_until: str):
        try:
            await self._page.goto(url, wait_until=wait_until, timeout=PAGE_LOAD_TIMEOUT_S * 1000)
        except PlaywrightTimeoutError as e:
            raise PageLoadTimeoutError(
                "Claude.ai took too long to load. Please check your connection and try again."
            ) from e
