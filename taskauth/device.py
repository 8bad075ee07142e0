"""
Device labelling from request metadata.

Produces the "Chrome on Windows" style label shown next to each session.
Display only: nothing here takes part in access control.
"""

from dataclasses import dataclass
from typing import Optional

from fastapi import Request

UNKNOWN_BROWSER = "Unknown Browser"
UNKNOWN_OS = "Unknown OS"
UNKNOWN_IP = "Unknown"

# (markers, excluded markers, name); Edge and Opera both embed "Chrome"
# in their user agents, so they go first
_BROWSER_MARKERS = [
    (("Edg/", "Edge/"), (), "Edge"),
    (("OPR/", "Opera"), (), "Opera"),
    (("Chrome",), (), "Chrome"),
    (("Safari",), (), "Safari"),
    (("Firefox",), (), "Firefox"),
]

# iOS agents say "like Mac OS X" and Android agents say "Linux; Android"
_OS_MARKERS = [
    (("Windows",), (), "Windows"),
    (("Mac",), ("iPhone", "iPad"), "MacOS"),
    (("Linux",), ("Android",), "Linux"),
    (("Android",), (), "Android"),
    (("iPhone", "iPad"), (), "iOS"),
]


@dataclass(frozen=True)
class DeviceInfo:
    """Device information attached to a session."""
    device: str
    browser: str
    os: str
    ip_address: str
    location: Optional[str] = None


def _match(user_agent: str, markers, default: str) -> str:
    for needles, excluded, name in markers:
        if any(n in user_agent for n in needles) and not any(n in user_agent for n in excluded):
            return name
    return default


def detect_device(
    user_agent: Optional[str],
    client_ip: Optional[str] = None,
    forwarded_for: Optional[str] = None,
) -> DeviceInfo:
    """
    Parse request metadata into a DeviceInfo.

    Args:
        user_agent: User-Agent header value
        client_ip: Address of the direct connection
        forwarded_for: X-Forwarded-For header value

    Returns:
        DeviceInfo with a label such as "Safari on iOS (Mobile)"
    """
    user_agent = user_agent or ""

    browser = _match(user_agent, _BROWSER_MARKERS, UNKNOWN_BROWSER)
    os_name = _match(user_agent, _OS_MARKERS, UNKNOWN_OS)

    device = f"{browser} on {os_name}"
    if "Mobile" in user_agent:
        device = f"{device} (Mobile)"

    return DeviceInfo(
        device=device,
        browser=browser,
        os=os_name,
        ip_address=client_ip or forwarded_for or UNKNOWN_IP,
    )


def device_from_request(request: Request) -> DeviceInfo:
    """FastAPI dependency: DeviceInfo for the current request."""
    return detect_device(
        request.headers.get("user-agent"),
        client_ip=request.client.host if request.client else None,
        forwarded_for=request.headers.get("x-forwarded-for"),
    )
