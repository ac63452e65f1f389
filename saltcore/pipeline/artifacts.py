"""
Artifacts handed between pipeline stages and back to the caller.

Vendor responses differ in how they hand back media (``b64_json`` vs ``url``,
data URLs vs bare base64). They are normalized into ``InlineBlob`` or
``RemoteRef`` right after the vendor call.
"""

from __future__ import annotations
import base64
import binascii
import re
from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Optional, Tuple, Union

_DATA_URL = re.compile(r"^data:(?P<media>[\w.+-]+/[\w.+-]+)?;base64,(?P<data>.*)$", re.DOTALL)


class ArtifactKind(str, Enum):
    TYPOGRAPHY_SET = "typography-set"
    ENHANCED_PROMPT = "enhanced-prompt"
    IMAGE_REFERENCE = "image-reference"
    COMPOSITE_IMAGE = "composite-image"
    VIDEO_REFERENCE = "video-reference"


class FailurePolicy(str, Enum):
    FAIL_FAST = "fail-fast" #any stage error fails the whole run
    DEGRADE = "degrade" #optional branch errors become a missing result


@dataclass(frozen=True)
class InlineBlob:
    data: bytes
    media_type: str = "image/png"

    @property
    def ref(self) -> str:
        return f"data:{self.media_type};base64,{base64.b64encode(self.data).decode('ascii')}"

    @property
    def b64(self) -> str:
        return base64.b64encode(self.data).decode('ascii')

    @property
    def text(self) -> str:
        return self.data.decode("utf-8")

    @classmethod
    def from_text(cls, text: str) -> "InlineBlob":
        return cls(text.encode("utf-8"), "text/plain")


@dataclass(frozen=True)
class RemoteRef:
    url: str

    @property
    def ref(self) -> str:
        return self.url


Payload = Union[InlineBlob, RemoteRef]


def to_payload(value: Any, media_type: str = "image/png") -> Payload:
    """Normalize a vendor media value: URL, data URL, raw base64 or bytes."""
    if isinstance(value, (InlineBlob, RemoteRef)):
        return value
    if isinstance(value, (bytes, bytearray)):
        return InlineBlob(bytes(value), media_type)
    if not isinstance(value, str) or not value.strip():
        raise ValueError(f"Unsupported media value: {type(value).__name__}")

    value = value.strip()
    if value.startswith(("http://", "https://")):
        return RemoteRef(value)

    match = _DATA_URL.match(value)
    if match:
        media_type = match.group("media") or media_type
        value = match.group("data")
    try:
        return InlineBlob(base64.b64decode(value, validate=True), media_type)
    except (binascii.Error, ValueError) as e:
        raise ValueError(f"Media value is neither a URL nor base64 data: {e}") from e


@dataclass(frozen=True)
class PipelineArtifact:
    kind: ArtifactKind
    payload: Payload
    stages: Tuple[str, ...] = ()
    variants: Tuple[Payload, ...] = ()
    metadata: Optional[Dict[str, Any]] = None

    @property
    def ref(self) -> str:
        return self.payload.ref

    @property
    def is_inline(self) -> bool:
        return isinstance(self.payload, InlineBlob)
