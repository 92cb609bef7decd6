"""Heuristic user-agent parsing into device type, browser and operating system.

Only the coarse families an administrator needs when reviewing audit records
are recognized.  Anything unrecognized (or an empty/garbled header) yields
``"unknown"`` for that field; parsing never raises.
"""

import re
from dataclasses import dataclass

UNKNOWN = "unknown"

_BOT_RE = re.compile(r"bot|crawler|spider|slurp|curl|wget|python-requests|httpx|postman", re.IGNORECASE)
_TABLET_RE = re.compile(r"ipad|tablet|kindle|silk|playbook|android(?!.*mobile)", re.IGNORECASE)
_MOBILE_RE = re.compile(r"mobi|iphone|ipod|android.*mobile|windows phone|blackberry|opera mini", re.IGNORECASE)

# Order matters: Edge and Opera embed "Chrome", Chrome embeds "Safari"
_BROWSER_PATTERNS: tuple[tuple[str, re.Pattern[str]], ...] = (
    ("Edge", re.compile(r"Edg(?:e|A|iOS)?/", re.IGNORECASE)),
    ("Opera", re.compile(r"OPR/|Opera", re.IGNORECASE)),
    ("Samsung Internet", re.compile(r"SamsungBrowser/", re.IGNORECASE)),
    ("Firefox", re.compile(r"Firefox/|FxiOS/", re.IGNORECASE)),
    ("Chrome", re.compile(r"Chrome/|CriOS/", re.IGNORECASE)),
    ("Safari", re.compile(r"Version/[\d.]+.*Safari/", re.IGNORECASE)),
    ("Internet Explorer", re.compile(r"MSIE |Trident/", re.IGNORECASE)),
)

_OS_PATTERNS: tuple[tuple[str, re.Pattern[str]], ...] = (
    ("Windows Phone", re.compile(r"Windows Phone", re.IGNORECASE)),
    ("Windows", re.compile(r"Windows NT|Win64|Win32", re.IGNORECASE)),
    ("iOS", re.compile(r"iPhone|iPad|iPod", re.IGNORECASE)),
    ("Android", re.compile(r"Android", re.IGNORECASE)),
    ("Chrome OS", re.compile(r"CrOS", re.IGNORECASE)),
    ("Mac OS", re.compile(r"Mac OS X|Macintosh", re.IGNORECASE)),
    ("Linux", re.compile(r"Linux|X11", re.IGNORECASE)),
)


@dataclass(frozen=True)
class DeviceInfo:
    """Device, browser and OS families parsed from a user-agent string."""

    device: str = UNKNOWN
    browser: str = UNKNOWN
    os: str = UNKNOWN


def _first_match(patterns: tuple[tuple[str, re.Pattern[str]], ...], user_agent: str) -> str:
    for name, pattern in patterns:
        if pattern.search(user_agent):
            return name
    return UNKNOWN


def _device_type(user_agent: str) -> str:
    if _BOT_RE.search(user_agent):
        return "bot"
    if _TABLET_RE.search(user_agent):
        return "tablet"
    if _MOBILE_RE.search(user_agent):
        return "mobile"
    if "Mozilla/" in user_agent:
        return "desktop"
    return UNKNOWN


def parse_user_agent(user_agent: str | None) -> DeviceInfo:
    """Parse a user-agent header into coarse device/browser/OS families.

    Args:
        user_agent: Raw ``User-Agent`` header value (may be None or garbage).

    Returns:
        DeviceInfo with ``"unknown"`` for every field that could not be determined.
    """
    if not isinstance(user_agent, str):
        return DeviceInfo()
    ua = user_agent.strip()
    if not ua or ua == UNKNOWN:
        return DeviceInfo()

    return DeviceInfo(
        device=_device_type(ua),
        browser=_first_match(_BROWSER_PATTERNS, ua),
        os=_first_match(_OS_PATTERNS, ua),
    )
