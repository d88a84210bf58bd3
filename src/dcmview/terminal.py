import logging
import os
import select
import struct
import sys
import time
from typing import IO

from dcmview.errors import ProbeTimeout
from dcmview.model import CapabilityLevel

logger = logging.getLogger(__name__)

# Graphics query for a 1x1 RGB image, followed by a primary device attributes
# request. Every terminal answers DA1, so the read ends as soon as it arrives.
GRAPHICS_QUERY = b"\033_Gi=31,s=1,v=1,a=q,t=d,f=24;AAAA\033\\"
DEVICE_ATTRIBUTES_QUERY = b"\033[c"
GRAPHICS_ACK = b"\033_Gi=31;OK"
PROBE_TIMEOUT = 0.25

PROTOCOLS = ("auto", "kitty", "blocks")


def get_terminal_size() -> tuple[int, int]:
    """Return (columns, rows) of the terminal, or (80, 24) if not a tty."""
    if not sys.stdout.isatty():
        return (80, 24)
    size = os.get_terminal_size()
    return (size.columns, size.lines)


def get_cell_size(stream: IO | None = None) -> tuple[int, int] | None:
    """Return the (width, height) of one character cell in pixels, if the terminal reports it."""
    stream = stream or sys.stdout
    try:
        import fcntl
        import termios
    except ImportError:
        return None
    try:
        packed = fcntl.ioctl(stream.fileno(), termios.TIOCGWINSZ, b"\0" * 8)
    except (OSError, ValueError, AttributeError):
        return None
    rows, cols, xpixels, ypixels = struct.unpack("HHHH", packed)
    if not (rows and cols and xpixels and ypixels):
        return None
    return (xpixels // cols, ypixels // rows)


def _read_reply(fd: int, timeout: float) -> bytes:
    """Read a terminal reply until the DA1 terminator arrives."""
    deadline = time.monotonic() + timeout
    reply = b""
    while True:
        remaining = deadline - time.monotonic()
        if remaining <= 0:
            raise ProbeTimeout(f"No terminal reply within {timeout:.2f}s (got {reply!r})")
        ready, _, _ = select.select([fd], [], [], remaining)
        if not ready:
            continue
        chunk = os.read(fd, 1024)
        if not chunk:
            raise ProbeTimeout("Terminal closed while waiting for a reply")
        reply += chunk
        # DA1 reply: ESC [ ? ... c
        if b"\033[?" in reply and reply.endswith(b"c"):
            return reply


def probe_graphics(timeout: float = PROBE_TIMEOUT) -> bool:
    """Ask the controlling terminal whether it understands the kitty graphics protocol."""
    try:
        import termios
        import tty
    except ImportError:
        return False

    try:
        fd = os.open("/dev/tty", os.O_RDWR | os.O_NOCTTY)
    except OSError:
        logger.debug("No controlling terminal; skipping graphics probe")
        return False

    try:
        old_settings = termios.tcgetattr(fd)
        tty.setcbreak(fd)
        try:
            os.write(fd, GRAPHICS_QUERY + DEVICE_ATTRIBUTES_QUERY)
            reply = _read_reply(fd, timeout)
        finally:
            termios.tcsetattr(fd, termios.TCSADRAIN, old_settings)
    except ProbeTimeout as exc:
        logger.debug("Graphics probe timed out: %s", exc)
        return False
    except termios.error as exc:
        logger.debug("Graphics probe failed: %s", exc)
        return False
    finally:
        os.close(fd)

    logger.debug("Graphics probe reply: %r", reply)
    return GRAPHICS_ACK in reply


def detect_capability(
    stream: IO | None = None,
    timeout: float = PROBE_TIMEOUT,
    protocol: str = "auto",
) -> CapabilityLevel:
    """Classify the output destination once for the whole run.

    ``protocol`` forces a level ("kitty" or "blocks"); "auto" checks whether
    *stream* is a terminal and, if so, probes it for graphics support.
    """
    if protocol not in PROTOCOLS:
        raise ValueError(f"Unknown protocol {protocol!r}, expected one of {PROTOCOLS}")
    if protocol == "kitty":
        return CapabilityLevel.HIGH_RES
    if protocol == "blocks":
        return CapabilityLevel.BASIC

    stream = stream or sys.stdout
    if not stream.isatty():
        logger.debug("Output is not a terminal; using character cells")
        return CapabilityLevel.BASIC
    if probe_graphics(timeout):
        return CapabilityLevel.HIGH_RES
    return CapabilityLevel.BASIC
