"""Keyword heuristic that classifies free-text requests."""

from __future__ import annotations

import re
from dataclasses import dataclass
from enum import Enum
from typing import Optional


class RequestType(str, Enum):
    CREATE_CHARACTER = "create_character"
    CREATE_SCENE = "create_scene"
    CREATE_STORYBOARD = "create_storyboard"
    GENERATE_IMAGE = "generate_image"
    COMPLEX = "complex"
    UNKNOWN = "unknown"


@dataclass(frozen=True)
class Intent:
    type: RequestType
    name: Optional[str] = None


# Checked in order; the first matching group wins.
KEYWORDS = (
    (RequestType.CREATE_CHARACTER, ("角色", "人物", "character")),
    (RequestType.CREATE_SCENE, ("场景", "环境", "scene")),
    (RequestType.CREATE_STORYBOARD, ("分镜", "镜头", "storyboard")),
    (RequestType.GENERATE_IMAGE, ("生成", "画", "generate")),
)
COMPLEX_KEYWORDS = ("电影", "项目", "film", "movie", "project")
COMPLEX_LENGTH = 100

_QUOTED = re.compile(r"[「“\"']([^」”\"']+)[」”\"']")
_NAMED = re.compile(r"(?:叫|名为|名字是|called|named)\s*[「“\"']?([^\s」”\"']+)", re.IGNORECASE)


def extract_name(message: str) -> Optional[str]:
    """Return a quoted name, or the word after "called"/"named", if present."""
    quoted = _QUOTED.search(message)
    if quoted:
        return quoted.group(1)
    named = _NAMED.search(message)
    if named:
        return named.group(1)
    return None


def analyze_intent(message: str) -> Intent:
    lowered = message.lower()
    for request_type, words in KEYWORDS:
        if any(word in lowered for word in words):
            name = extract_name(message) if request_type in (RequestType.CREATE_CHARACTER, RequestType.CREATE_SCENE) else None
            return Intent(request_type, name)
    if len(message) > COMPLEX_LENGTH or any(word in lowered for word in COMPLEX_KEYWORDS):
        return Intent(RequestType.COMPLEX)
    return Intent(RequestType.UNKNOWN)
