from dataclasses import dataclass, field
from typing import List, Optional
from pydantic import BaseModel, Field


# Shape the angle-generation model must satisfy
class Angle(BaseModel):
    title: str = Field(..., min_length=1)
    summary: str = Field(..., min_length=1)
    journey: str = Field(..., min_length=1)


class AnglesResponse(BaseModel):
    angles: List[Angle] = Field(..., min_length=3, max_length=5)


# Input types
@dataclass
class SermonRequest:
    topic: str
    scripture: str
    length: str
    audience: str
    chosen_angle: Optional[str] = None #title of the angle picked by the user


# Output types
@dataclass
class AngleSet:
    angles: List[Angle]
    attempts_used: int


@dataclass
class SermonOutline:
    outline: str
    image_url: Optional[str] = None
    image_prompt: Optional[str] = None
    stages: List[str] = field(default_factory=list)
