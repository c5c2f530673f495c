"""Cookie-based Claude.ai session validation and login waiting."""

import asyncio
import logging
import shutil
import time
from pathlib import Path
from typing import Any, Callable

from claude_usage_monitor.constants import (
    API_ORGS_URL,
    BASE_URL,
    BROWSER_SESSION_DIR,
    COOKIE_NAV_TIMEOUT_S,
    LOGIN_POLL_S,
    LOGIN_WAIT_S,
    SESSION_COOKIE_NAME,
)
from claude_usage_monitor.context import MonitorContext
from claude_usage_monitor.types.auth import (
    NO_COOKIE,
    AuthState,
    ClearResult,
    CookieCheck,
    SessionValidation,
)

logger = logging.getLogger(__name__)

# Chromium keeps its cookie store in one of these, depending on version
COOKIE_STORE_FILES = (
    Path("Default") / "Cookies",
    Path("Default") / "Network" / "Cookies",
)

# Left behind in the profile root when Chromium exits uncleanly
PROFILE_LOCK_FILES = ("SingletonLock", "SingletonSocket", "SingletonCookie", "lockfile")

_VALIDATE_JS = """
async (url) => {
    const response = await fetch(url, { method: 'GET', credentials: 'include' });
    return response.ok;
}
"""

BASE_DOMAIN = BASE_URL.split("://", 1)[1]


class SessionAuthenticator:
    """Validates the stored browser session against Claude.ai.

    Page and browser-context handles are attached by the fetcher for each
    browser lifetime. State moves NO_SESSION -> VALID -> INVALID -> VALID;
    clear_session() always returns to NO_SESSION.
    """

    def __init__(
        self,
        session_dir: str | Path = BROWSER_SESSION_DIR,
        context: MonitorContext | None = None,
        clock: Callable[[], float] = time.time,
    ):
        self._session_dir = Path(session_dir)
        self._context = context or MonitorContext()
        self._clock = clock
        self._page: Any = None
        self._browser_context: Any = None
        self._state = AuthState.NO_SESSION

    @property
    def session_dir(self) -> Path:
        return self._session_dir

    @property
    def state(self) -> AuthState:
        return self._state

    def attach(self, page, browser_context):
        """Set the page/context the checks run against (None to detach)."""
        self._page = page
        self._browser_context = browser_context

    def has_stored_session(self) -> bool:
        """True if the profile directory holds a non-empty cookie store."""
        try:
            if not self._session_dir.is_dir():
                return False
            for rel in COOKIE_STORE_FILES:
                cookie_file = self._session_dir / rel
                if cookie_file.is_file() and cookie_file.stat().st_size > 0:
                    return True
            return False
        except OSError:
            logger.debug("Error checking stored session", exc_info=True)
            return False

    async def check_local_cookie(self) -> CookieCheck:
        """Read the session cookie, visiting the base URL first if needed.

        Fails closed: any error reports a missing, expired cookie.
        """
        if self._page is None:
            return NO_COOKIE

        try:
            # The profile's cookies are only exposed once the domain is visited
            if BASE_DOMAIN not in (self._page.url or ""):
                await self._page.goto(
                    BASE_URL,
                    wait_until="domcontentloaded",
                    timeout=COOKIE_NAV_TIMEOUT_S * 1000,
                )

            cookie = await self._find_session_cookie()
            if cookie is None:
                return NO_COOKIE

            # Inclusive boundary; -1 (browser-session cookie) counts as expired
            expired = cookie.get("expires", -1) <= self._clock()
            return CookieCheck(exists=True, expired=expired, cookie=cookie)
        except Exception as e:
            logger.info("Error checking cookie: %s", e)
            return NO_COOKIE

    async def validate_session(self) -> SessionValidation:
        """Local cookie check first; one in-page API fetch only if it passes."""
        if self._page is None:
            return SessionValidation(valid=False, reason="no_page")

        cookie_check = await self.check_local_cookie()
        if not cookie_check.exists:
            self._context.debug("Auth: No %s cookie found", SESSION_COOKIE_NAME)
            return self._record(SessionValidation(valid=False, reason="no_cookie"))
        if cookie_check.expired:
            self._context.debug("Auth: %s cookie expired", SESSION_COOKIE_NAME)
            return self._record(SessionValidation(valid=False, reason="cookie_expired"))

        try:
            self._context.debug("Auth: Validating session with API call...")
            is_valid = bool(await self._page.evaluate(_VALIDATE_JS, API_ORGS_URL))
        except Exception as e:
            self._context.debug("Auth: Validation error: %s", e)
            return self._record(SessionValidation(valid=False, reason="validation_error"))

        self._context.debug("Auth: API validation result: %s", "valid" if is_valid else "invalid")
        return self._record(SessionValidation(
            valid=is_valid,
            reason="valid" if is_valid else "server_rejected",
        ))

    async def wait_for_login(
        self,
        max_wait: float = LOGIN_WAIT_S,
        poll_interval: float = LOGIN_POLL_S,
    ) -> bool:
        """Poll the cookie jar until the session cookie appears.

        Never navigates, so a login flow in progress is left undisturbed.
        """
        self._context.debug("Auth: Waiting for login (max %ss)...", max_wait)
        start = time.monotonic()
        while time.monotonic() - start < max_wait:
            await asyncio.sleep(poll_interval)
            try:
                if await self._find_session_cookie() is not None:
                    self._context.debug("Auth: %s cookie detected - login successful", SESSION_COOKIE_NAME)
                    self._state = AuthState.VALID
                    return True
            except Exception as e:
                logger.info("Cookie check error: %s", e)

        self._context.debug("Auth: Login timeout")
        return False

    def clear_session(self) -> ClearResult:
        """Delete the whole browser profile directory."""
        self._context.debug("=== CLEAR SESSION ===")
        try:
            if self._session_dir.exists():
                shutil.rmtree(self._session_dir)
                self._context.debug("Deleted session directory: %s", self._session_dir)
        except OSError as e:
            logger.error("Failed to delete session directory: %s", e)
            return ClearResult(success=False, message=f"Failed to clear session: {e}")

        self._state = AuthState.NO_SESSION
        return ClearResult(
            success=True,
            message="Session cleared successfully. Next fetch will prompt for login.",
        )

    def remove_profile_locks(self) -> ClearResult:
        """Delete stale Chromium lock files so the profile can be launched again.

        Only safe when no browser is using the profile; the login itself is kept.
        """
        removed = []
        for name in PROFILE_LOCK_FILES:
            lock = self._session_dir / name
            try:
                # SingletonLock is a dangling symlink once its process is gone
                if lock.is_symlink() or lock.exists():
                    lock.unlink()
                    removed.append(name)
            except OSError as e:
                logger.error("Failed to remove %s: %s", lock, e)
                return ClearResult(success=False, message=f"Failed to remove browser lock: {e}")

        self._context.debug("Removed profile locks: %s", ", ".join(removed) or "none")
        if not removed:
            return ClearResult(success=True, message="No browser locks found.")
        return ClearResult(success=True, message=f"Removed {len(removed)} browser lock file(s).")

    def diagnostics(self) -> dict:
        return {
            "sessionDir": str(self._session_dir),
            "hasExistingSession": self.has_stored_session(),
            "hasPage": self._page is not None,
            "hasBrowser": self._browser_context is not None,
            "authState": self._state.value,
        }

    async def _find_session_cookie(self) -> dict | None:
        source = self._browser_context if self._browser_context is not None else self._page.context
        cookies = await source.cookies(BASE_URL)
        for cookie in cookies:
            if cookie.get("name") == SESSION_COOKIE_NAME:
                return cookie
        return None

    def _record(self, validation: SessionValidation) -> SessionValidation:
        if validation.valid:
            self._state = AuthState.VALID
        elif self.has_stored_session():
            self._state = AuthState.INVALID
        else:
            self._state = AuthState.NO_SESSION
        return validation
