"""WhatsApp Web session driven through a persistent Chromium profile."""

from __future__ import annotations

import asyncio
import logging
import os
import platform
import sys
from pathlib import Path
from urllib.parse import quote

from playwright.async_api import (
    BrowserContext,
    Error as PlaywrightError,
    Page,
    Playwright,
    TimeoutError as PlaywrightTimeoutError,
    async_playwright,
)

from .session import (
    EVENT_AUTH_FAILURE,
    EVENT_AUTHENTICATED,
    EVENT_DISCONNECTED,
    EVENT_QR,
    EVENT_READY,
    STATE_CONNECTED,
    STATE_OPENING,
    STATE_UNPAIRED,
    Chat,
    Contact,
    MessageMedia,
    SentMessage,
    SessionInfo,
    SessionOptions,
    WhatsAppSession,
)

logger = logging.getLogger(__name__)

WHATSAPP_WEB_URL = "https://web.whatsapp.com/"

BROWSER_ARGS = (
    "--no-sandbox",
    "--disable-setuid-sandbox",
    "--disable-dev-shm-usage",
    "--disable-accelerated-2d-canvas",
    "--no-first-run",
    "--disable-gpu",
    "--no-default-browser-check",
    "--disable-extensions",
    "--disable-default-apps",
    "--disable-translate",
    "--disable-features=VizDisplayCompositor",
    "--disable-background-timer-throttling",
    "--disable-backgrounding-occluded-windows",
    "--disable-renderer-backgrounding",
    "--disable-ipc-flooding-protection",
    "--renderer-process-limit=1",
    "--no-pings",
)

_QR_SELECTOR = "[data-ref]"
_CHAT_LIST_SELECTOR = "#pane-side"
_COMPOSE_SELECTOR = "footer div[contenteditable='true']"
_ATTACH_SELECTOR = "[data-icon='plus'], [data-icon='attach-menu-plus'], [data-icon='clip']"
_FILE_INPUT_SELECTOR = "input[type='file']"
_SEND_SELECTOR = "[data-icon='send'], [data-icon='wds-ic-send-filled']"
_CHAT_ROW_SELECTOR = "#pane-side [role='listitem'], #pane-side [role='row']"
_GROUP_ICON_SELECTOR = "[data-icon='default-group']"

_LAST_OUTGOING_ID_JS = """
() => {
  const nodes = document.querySelectorAll('div.message-out');
  const last = nodes[nodes.length - 1];
  const holder = last && last.closest('[data-id]');
  return holder ? holder.getAttribute('data-id') : null;
}
"""


def resolve_browser_executable(explicit: str | None = None) -> str | None:
    """Return a Chrome/Chromium executable for this platform, if one is installed.

    ``None`` lets Playwright fall back to its bundled Chromium.
    """

    candidate = explicit or os.environ.get("PUPPETEER_EXECUTABLE_PATH")
    if candidate:
        return candidate

    if sys.platform == "win32":
        candidates = [
            Path("C:/Program Files/Google/Chrome/Application/chrome.exe"),
            Path("C:/Program Files (x86)/Google/Chrome/Application/chrome.exe"),
            Path.home() / "AppData/Local/Google/Chrome/Application/chrome.exe",
        ]
    elif sys.platform == "darwin":
        candidates = [Path("/Applications/Google Chrome.app/Contents/MacOS/Google Chrome")]
    else:
        candidates = [Path("/usr/bin/chromium-browser"), Path("/usr/bin/chromium")]

    for path in candidates:
        if path.exists():
            logger.info("Found browser at %s", path)
            return str(path)

    logger.warning("Chrome not found in standard paths; using the bundled Chromium")
    return None


def build_session_options(
    *,
    client_id: str,
    session_path: str,
    headless: bool,
    executable_path: str | None,
) -> SessionOptions:
    return SessionOptions(
        client_id=client_id,
        data_path=str(Path(session_path) / f"session-{client_id}"),
        headless=headless,
        executable_path=resolve_browser_executable(executable_path),
        args=BROWSER_ARGS,
    )


class BrowserWhatsAppSession(WhatsAppSession):
    """Translate WhatsApp Web page state into session lifecycle events."""

    def __init__(
        self,
        options: SessionOptions,
        *,
        poll_interval: float = 1.0,
        navigation_timeout: float = 60.0,
    ) -> None:
        super().__init__()
        self.options = options
        self.poll_interval = poll_interval
        self.navigation_timeout_ms = navigation_timeout * 1000
        self.info = None
        self._playwright: Playwright | None = None
        self._context: BrowserContext | None = None
        self._page: Page | None = None
        self._watcher: asyncio.Task | None = None
        self._state = STATE_OPENING
        self._authenticated = False
        self._last_qr: str | None = None
        self._qr_scanned = False
        self._closing = False
        self._page_lock = asyncio.Lock()

    async def initialize(self) -> None:
        Path(self.options.data_path).mkdir(parents=True, exist_ok=True)
        self._playwright = await async_playwright().start()
        try:
            self._context = await self._playwright.chromium.launch_persistent_context(
                user_data_dir=self.options.data_path,
                headless=self.options.headless,
                executable_path=self.options.executable_path,
                args=list(self.options.args),
            )
            self._page = (
                self._context.pages[0] if self._context.pages else await self._context.new_page()
            )
            await self._page.goto(
                WHATSAPP_WEB_URL,
                wait_until="domcontentloaded",
                timeout=self.navigation_timeout_ms,
            )
        except Exception:
            await self._close_browser()
            raise
        self._watcher = asyncio.get_running_loop().create_task(
            self._watch(), name=f"whatsapp-watch-{self.options.client_id}"
        )

    async def get_state(self) -> str:
        if self._page is None or self._page.is_closed():
            raise RuntimeError("WhatsApp Web session is not running")
        return self._state

    async def send_message(
        self, chat_id: str, content: str | MessageMedia, *, caption: str | None = None
    ) -> SentMessage:
        page = self._require_page()
        phone = chat_id.split("@", 1)[0]
        text = content if isinstance(content, str) else ""

        async with self._page_lock:
            await page.goto(
                f"{WHATSAPP_WEB_URL}send?phone={phone}&text={quote(text)}",
                wait_until="domcontentloaded",
                timeout=self.navigation_timeout_ms,
            )
            try:
                compose = await page.wait_for_selector(
                    _COMPOSE_SELECTOR, timeout=self.navigation_timeout_ms
                )
            except PlaywrightTimeoutError as exc:
                raise RuntimeError(f"Chat could not be opened for {phone}") from exc

            if isinstance(content, MessageMedia):
                await page.click(_ATTACH_SELECTOR)
                await page.set_input_files(
                    _FILE_INPUT_SELECTOR,
                    files=[
                        {
                            "name": content.filename or "attachment",
                            "mimeType": content.mimetype,
                            "buffer": content.data,
                        }
                    ],
                )
                await page.wait_for_selector(_SEND_SELECTOR, timeout=self.navigation_timeout_ms)
                if caption:
                    await page.keyboard.type(caption)
                await page.click(_SEND_SELECTOR)
            else:
                await compose.press("Enter")

            await page.wait_for_timeout(1000)
            message_id = await page.evaluate(_LAST_OUTGOING_ID_JS)
        return SentMessage(id=message_id, chat_id=chat_id)

    async def logout(self) -> None:
        page = self._require_page()
        async with self._page_lock:
            await page.click("[data-icon='menu'], [aria-label='Menu']")
            await page.get_by_role("button", name="Log out").first.click()
            await page.get_by_role("button", name="Log out").last.click()
        self._authenticated = False
        self._state = STATE_UNPAIRED

    async def destroy(self) -> None:
        self._closing = True
        if self._watcher is not None:
            self._watcher.cancel()
            self._watcher = None
        await self._close_browser()

    async def get_chats(self) -> list[Chat]:
        page = self._require_page()
        chats: list[Chat] = []
        async with self._page_lock:
            rows = await page.query_selector_all(_CHAT_ROW_SELECTOR)
            for row in rows:
                title = await row.query_selector("span[title]")
                if title is None:
                    continue
                name = await title.get_attribute("title") or ""
                is_group = await row.query_selector(_GROUP_ICON_SELECTOR) is not None
                chats.append(
                    Chat(
                        id=_chat_id_for(name, is_group=is_group),
                        name=name,
                        is_group=is_group,
                    )
                )
        return chats

    async def get_contacts(self) -> list[Contact]:
        contacts = []
        for chat in await self.get_chats():
            if chat.is_group:
                continue
            digits = "".join(ch for ch in chat.name if ch.isdigit())
            contacts.append(
                Contact(id=chat.id, name=chat.name, phone=digits or None)
            )
        return contacts

    def _require_page(self) -> Page:
        if self._page is None or self._page.is_closed():
            raise RuntimeError("WhatsApp Web session is not running")
        return self._page

    async def _watch(self) -> None:
        page = self._require_page()
        try:
            while not self._closing:
                if page.is_closed():
                    self._state = STATE_OPENING
                    self.emit(EVENT_DISCONNECTED, "NAVIGATION")
                    return
                if await page.query_selector(_CHAT_LIST_SELECTOR):
                    if not self._authenticated:
                        self._on_logged_in()
                else:
                    qr = await page.query_selector(_QR_SELECTOR)
                    if qr is not None:
                        if self._authenticated:
                            self._authenticated = False
                            self._state = STATE_UNPAIRED
                            self.emit(EVENT_DISCONNECTED, "LOGOUT")
                            return
                        self._on_qr(await qr.get_attribute("data-ref"))
                    elif self._last_qr and not self._authenticated:
                        self._qr_scanned = True
                await asyncio.sleep(self.poll_interval)
        except asyncio.CancelledError:
            raise
        except PlaywrightError as exc:
            if not self._closing:
                logger.warning("WhatsApp Web page failed: %s", exc)
                self._state = STATE_OPENING
                self.emit(EVENT_DISCONNECTED, str(exc))

    def _on_logged_in(self) -> None:
        self._authenticated = True
        self._qr_scanned = False
        self._last_qr = None
        self._state = STATE_CONNECTED
        self.info = SessionInfo(platform=platform.system().lower(), version="web")
        self.emit(EVENT_AUTHENTICATED)
        self.emit(EVENT_READY)

    def _on_qr(self, ref: str | None) -> None:
        if self._qr_scanned:
            self._qr_scanned = False
            self.emit(EVENT_AUTH_FAILURE, "Pairing was not completed")
        if ref and ref != self._last_qr:
            self._last_qr = ref
            self._state = STATE_UNPAIRED
            self.emit(EVENT_QR, ref)

    async def _close_browser(self) -> None:
        if self._context is not None:
            try:
                await self._context.close()
            except PlaywrightError as exc:
                logger.debug("Browser context already closed: %s", exc)
            self._context = None
            self._page = None
        if self._playwright is not None:
            await self._playwright.stop()
            self._playwright = None


def _chat_id_for(name: str, *, is_group: bool) -> str:
    digits = "".join(ch for ch in name if ch.isdigit())
    if not is_group and digits:
        return f"{digits}@c.us"
    return f"{name}@g.us" if is_group else name


__all__ = [
    "BROWSER_ARGS",
    "BrowserWhatsAppSession",
    "build_session_options",
    "resolve_browser_executable",
]
