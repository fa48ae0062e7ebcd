"""Configuration objects and constants for the image scraper."""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from typing import List, Optional

ENV_VAR = "PAGE_IMAGES_ENV"
EXECUTABLE_PATH_VAR = "PAGE_IMAGES_EXECUTABLE_PATH"
DEFAULT_PRODUCTION_EXECUTABLE = "/usr/bin/google-chrome-stable"

DESKTOP_USER_AGENT = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36"
)
MOBILE_USER_AGENT = (
    "Mozilla/5.0 (iPhone; CPU iPhone OS 16_0 like Mac OS X) AppleWebKit/605.1.15 "
    "(KHTML, like Gecko) Version/16.0 Mobile/15E148 Safari/604.1"
)

BASE_LAUNCH_ARGS = [
    "--no-sandbox",
    "--disable-setuid-sandbox",
    "--disable-dev-shm-usage",
    "--disable-accelerated-2d-canvas",
    "--no-first-run",
    "--no-zygote",
    "--disable-gpu",
]


@dataclass(frozen=True)
class Viewport:
    """Window size and user agent used for a single viewport pass."""

    name: str
    width: int
    height: int
    user_agent: str


DESKTOP_VIEWPORT = Viewport("desktop", 1920, 1080, DESKTOP_USER_AGENT)
MOBILE_VIEWPORT = Viewport("mobile", 375, 812, MOBILE_USER_AGENT)


@dataclass
class ScrapeConfig:
    """Top-level settings that control rendering and size probing."""

    navigation_timeout: float = 30.0
    wait_after_load: float = 2.0
    scroll_step: int = 100
    scroll_interval: float = 0.1
    head_timeout: float = 10.0
    get_timeout: float = 15.0
    max_redirects: int = 5
    request_timeout: float = 120.0
    max_concurrent_probes: Optional[int] = None
    desktop_viewport: Viewport = DESKTOP_VIEWPORT
    mobile_viewport: Viewport = MOBILE_VIEWPORT

    def __post_init__(self) -> None:
        if self.max_concurrent_probes is not None and self.max_concurrent_probes < 1:
            raise ValueError(
                f"max_concurrent_probes must be at least 1, got {self.max_concurrent_probes}"
            )


@dataclass
class BrowserSettings:
    """Chromium launch parameters derived from the execution environment."""

    production: bool = False
    executable_path: Optional[str] = None
    args: List[str] = field(default_factory=lambda: list(BASE_LAUNCH_ARGS))

    @classmethod
    def from_env(cls) -> "BrowserSettings":
        production = os.getenv(ENV_VAR, "development").strip().lower() == "production"
        executable_path = os.getenv(EXECUTABLE_PATH_VAR) or None
        args = list(BASE_LAUNCH_ARGS)
        if production:
            executable_path = executable_path or DEFAULT_PRODUCTION_EXECUTABLE
            args.append("--single-process")
        return cls(production=production, executable_path=executable_path, args=args)

    def launch_options(self) -> dict:
        options = {"headless": True, "args": list(self.args)}
        if self.executable_path:
            options["executable_path"] = self.executable_path
        return options
