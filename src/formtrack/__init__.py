"""FormTrack: capture form submissions from live pages driven by Playwright."""

__version__ = "0.3.0"
