"""Playwright runner module."""

from smoke_orchestrator.runners.playwright.adapter import PlaywrightAdapter
from smoke_orchestrator.runners.playwright.installer import PlaywrightInstaller

__all__ = ["PlaywrightAdapter", "PlaywrightInstaller"]
