import base64
import io
import logging
from typing import BinaryIO

from dcmview.engine import RESET, check_image
from dcmview.errors import EncodeError
from dcmview.model import CapabilityLevel, LayoutPlan, NormalizedImage

logger = logging.getLogger(__name__)

# Kitty recommends chunks of 4096 bytes of base64 payload
CHUNK_SIZE = 4096


def png_payload(image: NormalizedImage) -> bytes:
    buf = io.BytesIO()
    try:
        image.to_pil().save(buf, format="PNG")
    except (OSError, ValueError) as exc:
        raise EncodeError(f"Failed to encode PNG payload: {exc}") from exc
    return base64.standard_b64encode(buf.getvalue())


def chunk_payload(payload: bytes, chunk_size: int = CHUNK_SIZE) -> list[bytes]:
    chunks = [payload[i : i + chunk_size] for i in range(0, len(payload), chunk_size)]
    return chunks or [b""]


def graphics_commands(payload: bytes, cols: int, rows: int) -> list[bytes]:
    """Wrap a base64 payload in APC graphics commands: ESC _G <keys>;<data> ESC \\.

    The first command carries the display keys (a=T transmit and show,
    f=100 PNG, q=2 no replies). m=1 marks more data to come; the last
    command always has m=0 so the terminal knows the transfer is over.
    """
    chunks = chunk_payload(payload)
    commands = []
    for i, chunk in enumerate(chunks):
        more = 0 if i == len(chunks) - 1 else 1
        if i == 0:
            keys = f"a=T,f=100,q=2,c={cols},r={rows},m={more}"
        else:
            keys = f"m={more}"
        commands.append(b"\033_G" + keys.encode("ascii") + b";" + chunk + b"\033\\")
    return commands


class KittyEncoder:
    """Sends the bitmap through the kitty terminal graphics protocol."""

    capability = CapabilityLevel.HIGH_RES

    def encode(self, image: NormalizedImage, plan: LayoutPlan, writer: BinaryIO) -> None:
        check_image(image, plan)
        payload = png_payload(image)
        commands = graphics_commands(payload, plan.cols, plan.rows)
        logger.debug("Sending %d byte payload in %d chunks", len(payload), len(commands))
        for command in commands:
            writer.write(command)
        writer.write(RESET + b"\n")
