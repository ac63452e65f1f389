from __future__ import annotations
import logging
from dataclasses import dataclass
from enum import Enum
from typing import Optional

logger = logging.getLogger(__name__)

# typography style -> instruction appended to the typography prompt
TYPOGRAPHY_STYLES = {
    "focused": "make it focused and clean",
    "trendy": "make it fun and trendy",
    "kids": (
        "make it for kids and childrens church - Use fun bubbly, 3D or illustrated fonts, "
        "use a white or cream color for subtitle text to ensure contrast and easy readability."
    ),
    "handwritten": "make it handwritten",
}
DEFAULT_TYPOGRAPHY_STYLE = "focused"


class PosterStrategy(str, Enum):
    EDIT = "edit"
    GENERATE = "generate"
    RESPONSES = "responses"

    @classmethod
    def resolve(cls, name: Optional[str]) -> "PosterStrategy":
        """Unknown names, ``default`` and None all select ``edit``."""
        if name is None or name == "default":
            return cls.EDIT
        try:
            return cls(name)
        except ValueError:
            logger.warning(f"Unknown poster strategy '{name}', falling back to '{cls.EDIT.value}'")
            return cls.EDIT


@dataclass(frozen=True)
class PosterRequest:
    typography_ref: str #URL or data URL / base64 of the typography image
    description: str #scene description for the background
    strategy: Optional[str] = None
