"""Removal of leftover browser processes and persisted session data."""

from __future__ import annotations

import asyncio
import logging
import shutil
from pathlib import Path

import psutil
from anyio import to_thread

logger = logging.getLogger(__name__)

BROWSER_PROCESS_NAMES = ("chrome", "chromium", "chromedriver", "headless_shell")


class SessionCleaner:
    """Own the on-disk session profile and the browser processes using it."""

    def __init__(
        self,
        session_path: str | Path,
        *,
        settle_delay: float = 2.0,
        terminate_timeout: float = 3.0,
    ) -> None:
        self.session_path = Path(session_path).resolve()
        self.settle_delay = settle_delay
        self.terminate_timeout = terminate_timeout

    async def cleanup(self, *, clear_session_data: bool = False) -> None:
        """Kill stray browser processes and optionally wipe the session directory."""

        logger.info("Cleaning up WhatsApp sessions (clear data: %s)", clear_session_data)
        killed = await to_thread.run_sync(self.kill_browser_processes)
        if killed:
            logger.info("Terminated %s leftover browser processes", killed)
        if clear_session_data:
            await to_thread.run_sync(self.wipe_session_data)
        if self.settle_delay:
            await asyncio.sleep(self.settle_delay)

    def kill_browser_processes(self) -> int:
        victims = [proc for proc in psutil.process_iter(["name", "cmdline"]) if self._owns(proc)]
        for proc in victims:
            try:
                proc.terminate()
            except (psutil.NoSuchProcess, psutil.AccessDenied):
                continue
        _, alive = psutil.wait_procs(victims, timeout=self.terminate_timeout)
        for proc in alive:
            try:
                proc.kill()
            except (psutil.NoSuchProcess, psutil.AccessDenied):
                continue
        return len(victims)

    def wipe_session_data(self) -> bool:
        if not self.session_path.exists():
            return False
        shutil.rmtree(self.session_path, ignore_errors=True)
        logger.info("Session data cleared at %s", self.session_path)
        return True

    def _owns(self, proc: psutil.Process) -> bool:
        name = (proc.info.get("name") or "").lower()
        if not any(marker in name for marker in BROWSER_PROCESS_NAMES):
            return False
        cmdline = " ".join(proc.info.get("cmdline") or []).lower()
        return str(self.session_path).lower() in cmdline or "whatsapp" in cmdline


__all__ = ["BROWSER_PROCESS_NAMES", "SessionCleaner"]
