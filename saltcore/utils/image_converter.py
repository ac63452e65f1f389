from __future__ import annotations
from contextlib import contextmanager
from pathlib import Path
from typing import Iterator, Union
import base64
import io
import logging
import os
import re
import tempfile

import httpx
from PIL import Image, UnidentifiedImageError
from tenacity import retry, stop_after_attempt, wait_exponential_jitter, retry_if_exception_type

logger = logging.getLogger(__name__)

_DATA_URL_PREFIX = re.compile(r"^data:[\w.+-]+/[\w.+-]+;base64,")


def strip_data_url(value: str) -> str:
    return _DATA_URL_PREFIX.sub("", value.strip(), count=1)


def to_base64(image_data: Union[str, Path, bytes]) -> str:
    """Base64 for raw bytes, a file path, or an existing data URL."""
    if isinstance(image_data, (bytes, bytearray)):
        return base64.b64encode(bytes(image_data)).decode('utf-8')

    if isinstance(image_data, str) and image_data.startswith("data:"):
        return strip_data_url(image_data)

    if isinstance(image_data, (str, Path)):
        path = Path(image_data)
        if not path.exists():
            raise FileNotFoundError(f"Image file not found: {image_data}")
        return base64.b64encode(path.read_bytes()).decode('utf-8')

    raise ValueError(f"Unsupported image data type: {type(image_data)}")


def guess_media_type(data: bytes, default: str = "image/png") -> str:
    """Media type from the image header only; pixels are never decoded."""
    try:
        with Image.open(io.BytesIO(data)) as img:
            return Image.MIME.get(img.format, default)
    except (UnidentifiedImageError, OSError):
        return default


@retry(reraise=True, wait=wait_exponential_jitter(initial=0.5, max=4), stop=stop_after_attempt(3), retry=retry_if_exception_type((httpx.TransportError,)))
async def download_bytes(client: httpx.AsyncClient, url: str) -> bytes:
    response = await client.get(url, follow_redirects=True)
    response.raise_for_status()
    logger.info(f"Downloaded {len(response.content)} bytes from {url}")
    return response.content


@contextmanager
def staged_file(data: bytes, suffix: str = ".png") -> Iterator[Path]:
    """Write ``data`` to a temporary file that is removed on exit, error or not."""
    fd, name = tempfile.mkstemp(prefix="saltcore_", suffix=suffix)
    path = Path(name)
    try:
        with os.fdopen(fd, "wb") as fh:
            fh.write(data)
        yield path
    finally:
        path.unlink(missing_ok=True)
