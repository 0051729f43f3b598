"""
Chromium Manager

Shows the local player page full screen by running Chromium in kiosk mode
on the configured X display.
"""
import asyncio
import logging
import os
import signal
from typing import List, Optional

from config import KIOSK_PROFILE_DIR

# Unattended screen: no first-run UI, crash bubbles, translate bar or prompts
KIOSK_FLAGS = [
    "--kiosk",
    "--start-fullscreen",
    "--no-first-run",
    "--noerrdialogs",
    "--disable-infobars",
    "--disable-session-crashed-bubble",
    "--disable-translate",
    "--disable-features=TranslateUI",
    "--disable-notifications",
    "--password-store=basic",
    "--autoplay-policy=no-user-gesture-required",  # muted videos must start on their own
]


class ChromiumManager:
    """Owns the kiosk browser process for the player page"""

    def __init__(self, browser: str = "chromium-browser", display: str = ":0",
                 width: int = 1920, height: int = 1080):
        """
        Initialize Chromium Manager

        Args:
            browser: Browser executable name or path
            display: X display to open the window on
            width: Window width in pixels
            height: Window height in pixels
        """
        self.browser = browser
        self.display = display
        self.width = width
        self.height = height
        self.process: Optional[asyncio.subprocess.Process] = None
        self.page_url: Optional[str] = None

    def build_command(self, url: str) -> List[str]:
        return [
            self.browser,
            *KIOSK_FLAGS,
            f"--user-data-dir={KIOSK_PROFILE_DIR}",
            f"--window-size={self.width},{self.height}",
            "--window-position=0,0",
            url,
        ]

    async def launch(self, url: str, startup_wait: float = 2.0) -> bool:
        """
        Open url in a kiosk window, replacing any browser already running.

        Args:
            url: Page to show (normally the local player page)
            startup_wait: Seconds to wait before checking the browser stayed up

        Returns:
            True if the browser is running, False otherwise
        """
        if self.is_running():
            await self.stop()

        env = dict(os.environ, DISPLAY=self.display)
        logging.info(f"Launching kiosk browser on {self.display} ({self.width}x{self.height}): {url}")

        try:
            self.process = await asyncio.create_subprocess_exec(
                *self.build_command(url),
                env=env,
                stdout=asyncio.subprocess.DEVNULL,
                stderr=asyncio.subprocess.PIPE,
                start_new_session=True,  # own process group, so helpers die with it
            )
        except FileNotFoundError:
            logging.error(f"Kiosk browser '{self.browser}' not found; install chromium or set kiosk_browser")
            self.process = None
            return False
        except OSError as e:
            logging.error(f"Could not launch kiosk browser: {e}")
            self.process = None
            return False

        await asyncio.sleep(startup_wait)

        if self.process.returncode is not None:
            output = await self.process.stderr.read()
            logging.error(f"Kiosk browser exited during startup ({self.process.returncode}): "
                          f"{output.decode(errors='ignore').strip()}")
            self.process = None
            return False

        self.page_url = url
        logging.info(f"Kiosk browser running (PID: {self.process.pid})")
        return True

    async def stop(self, timeout: float = 3.0):
        """Terminate the browser process group, escalating to SIGKILL after timeout"""
        if not self.is_running():
            return

        process = self.process
        logging.info("Stopping kiosk browser")
        try:
            self._signal_group(process, signal.SIGTERM)
            try:
                await asyncio.wait_for(process.wait(), timeout=timeout)
            except asyncio.TimeoutError:
                logging.warning("Kiosk browser ignored SIGTERM, killing")
                self._signal_group(process, signal.SIGKILL)
        finally:
            self.process = None
            self.page_url = None

    @staticmethod
    def _signal_group(process: asyncio.subprocess.Process, sig: int):
        try:
            os.killpg(os.getpgid(process.pid), sig)
        except ProcessLookupError:
            logging.debug(f"Kiosk browser already gone (PID: {process.pid})")

    def is_running(self) -> bool:
        if self.process is None:
            return False
        if self.process.returncode is not None:
            logging.warning(f"Kiosk browser exited with code {self.process.returncode}")
            self.process = None
            self.page_url = None
            return False
        return True

    def get_status(self) -> dict:
        running = self.is_running()
        return {
            "is_running": running,
            "page_url": self.page_url,
            "display": self.display,
            "pid": self.process.pid if running else None,
        }
