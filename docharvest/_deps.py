"""Dependency checks: auto-install missing deps on first run, or explain how to install them."""

import os
import subprocess
import sys

# Set to "0" or "false" to disable auto-install
AUTO_INSTALL_ENV = "DOCHARVEST_AUTO_INSTALL_DEPS"

# (import_name, pip_package_name)
REQUIRED = [
    ("httpx", "httpx"),
    ("bs4", "beautifulsoup4"),
    ("lxml", "lxml"),
    ("tqdm", "tqdm"),
]

# Only needed for --js
OPTIONAL = [
    ("playwright", "playwright"),
]

INSTALL_CMD = "pip install docharvest"
INSTALL_CMD_SOURCE = "pip install -e ."
OPTIONAL_EXTRAS = "pip install docharvest[js] && playwright install chromium"


def _auto_install_enabled() -> bool:
    val = os.environ.get(AUTO_INSTALL_ENV, "1").lower()
    return val not in ("0", "false", "no")


def _import(name: str) -> bool:
    try:
        __import__(name)
        return True
    except ImportError:
        return False


def missing(packages: list[tuple[str, str]]) -> list[str]:
    """pip names of the packages whose import fails."""
    return [pip_name for mod_name, pip_name in packages if not _import(mod_name)]


def _try_auto_install(names: list[str]) -> None:
    """If enabled, pip install names and exit (0 on success, 1 on failure)."""
    if not _auto_install_enabled():
        return
    cmd = [sys.executable, "-m", "pip", "install", "-q"] + names
    print("Auto-installing dependencies...", file=sys.stderr)
    try:
        subprocess.run(cmd, check=True)
    except (subprocess.CalledProcessError, FileNotFoundError) as e:
        print(f"Auto-install failed: {e}. Install manually.", file=sys.stderr)
        sys.exit(1)
    print("Dependencies installed. Run the command again.", file=sys.stderr)
    sys.exit(0)


def check_required() -> bool:
    """Verify required dependencies are importable; otherwise auto-install or print help, and exit."""
    names = missing(REQUIRED)
    if not names:
        return True
    _try_auto_install(names)
    print("Missing required dependencies: " + ", ".join(names), file=sys.stderr)
    print(f"  Install from PyPI:  {INSTALL_CMD}", file=sys.stderr)
    print(f"  Or from source:     {INSTALL_CMD_SOURCE}", file=sys.stderr)
    print(f"  ({AUTO_INSTALL_ENV}=1 installs them automatically)", file=sys.stderr)
    sys.exit(1)


def optional_hint(use_browser: bool) -> str | None:
    """One-line hint when --js is requested but Playwright is not installed."""
    if not use_browser or not missing(OPTIONAL):
        return None
    return f"Browser fetch needs Playwright: {OPTIONAL_EXTRAS}"
