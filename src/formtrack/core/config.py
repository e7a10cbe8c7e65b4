"""Configuration loading from CLI input and the environment."""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv


@dataclass(slots=True)
class CaptureConfig:
    """Holds runtime options for a capture session."""

    start_url: Optional[str]
    report_path: Path
    headless: bool = False
    webhook_url: Optional[str] = None
    rescan_interval: float = 1.0
    tick_ms: int = 100
    verbose: bool = False


def _env_float(name: str, default: float) -> float:
    raw = os.getenv(name)
    if not raw:
        return default
    try:
        return float(raw)
    except ValueError:
        return default


def load_configuration(
    start_url: Optional[str],
    report_name: str = "formtrack_submissions.json",
    *,
    webhook_url: Optional[str] = None,
    headless: Optional[bool] = None,
    verbose: bool = False,
) -> CaptureConfig:
    """Builds a ``CaptureConfig`` from CLI input and environment variables."""

    load_dotenv()  # Loads .env values if present

    if headless is None:
        headless = os.getenv("HEADLESS", "false").lower() in {"1", "true", "yes"}

    return CaptureConfig(
        start_url=start_url.strip() if start_url else None,
        report_path=Path(report_name).resolve(),
        headless=headless,
        webhook_url=webhook_url or os.getenv("FORMTRACK_WEBHOOK_URL") or None,
        rescan_interval=max(_env_float("FORMTRACK_RESCAN_INTERVAL", 1.0), 0.1),
        tick_ms=max(int(_env_float("FORMTRACK_TICK_MS", 100)), 10),
        verbose=verbose,
    )
