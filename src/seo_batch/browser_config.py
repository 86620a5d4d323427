"""
Browser settings for page sessions and link discovery.

BrowserConfig is a Pydantic model so values coming from the environment or
a JSON file are validated before the first browser is launched. Two presets
cover the usual trade-off between batch speed and catching late tracking
beacons.
"""
import random
from typing import List, Literal, Optional

from pydantic import BaseModel, Field


# Desktop user agents, one picked per browser context
USER_AGENTS = [
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 (KHTML, like Gecko) Chrome/124.0.0.0 Safari/537.36",
    "Mozilla/5.0 (Macintosh; Intel Mac OS X 10_15_7) AppleWebKit/537.36 (KHTML, like Gecko) Chrome/124.0.0.0 Safari/537.36",
    "Mozilla/5.0 (X11; Linux x86_64) AppleWebKit/537.36 (KHTML, like Gecko) Chrome/124.0.0.0 Safari/537.36",
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 (KHTML, like Gecko) Chrome/123.0.0.0 Safari/537.36",
    "Mozilla/5.0 (Macintosh; Intel Mac OS X 10_15_7) AppleWebKit/537.36 (KHTML, like Gecko) Chrome/123.0.0.0 Safari/537.36",
]

BrowserType = Literal["chromium", "firefox", "webkit"]
WaitUntil = Literal["load", "domcontentloaded", "networkidle", "commit"]


def pick_user_agent() -> str:
    """Pick one agent from USER_AGENTS at random."""
    return random.choice(USER_AGENTS)


class BrowserConfig(BaseModel):
    """
    Settings shared by every page attempt of a run.

    The model is read-only in practice: the controller hands the same
    instance to every worker thread.
    """

    browser_type: BrowserType = Field(
        default="chromium",
        description="Playwright engine launched for each attempt"
    )

    headless: bool = Field(
        default=False,
        description="Launch without a browser window"
    )

    navigation_timeout_ms: int = Field(
        default=90000,
        description="page.goto timeout in milliseconds",
        ge=1000,
        le=600000
    )

    wait_until: WaitUntil = Field(
        default="domcontentloaded",
        description="Load event page.goto waits for"
    )

    post_load_wait_ms: int = Field(
        default=5000,
        description="Pause after navigation so deferred tags and beacons can fire",
        ge=0,
        le=120000
    )

    body_text_timeout_ms: int = Field(
        default=5000,
        description="Timeout for reading the body innerText",
        ge=0,
        le=60000
    )

    user_agent: Optional[str] = Field(
        default=None,
        description="Fixed user agent for every context; overrides rotation"
    )

    rotate_user_agent: bool = Field(
        default=True,
        description="Pick a random USER_AGENTS entry per context"
    )

    launch_args: List[str] = Field(
        default_factory=list,
        description="Extra engine command-line switches, e.g. '--disable-http2'"
    )

    class Config:
        """Pydantic model configuration."""
        validate_assignment = True

    def get_user_agent(self) -> str:
        """User agent for the next browser context."""
        if self.user_agent:
            return self.user_agent
        return pick_user_agent() if self.rotate_user_agent else USER_AGENTS[0]


# Short waits for large batches; beacons that fire late may be missed
FAST_CONFIG = BrowserConfig(
    headless=True,
    navigation_timeout_ms=30000,
    post_load_wait_ms=1000,
)

# Waits for network idle plus a long pause, for tracking audits
THOROUGH_CONFIG = BrowserConfig(
    headless=True,
    wait_until="networkidle",
    navigation_timeout_ms=120000,
    post_load_wait_ms=8000,
)

PRESETS = {
    "fast": FAST_CONFIG,
    "thorough": THOROUGH_CONFIG,
}


def preset_overrides(name: str) -> dict:
    """Fields a named preset sets explicitly, for RunConfig.with_overrides."""
    return PRESETS[name].model_dump(exclude_unset=True)
