"""Codecs for the compound values the recorder persists as strings."""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Any

_SCROLL_PATTERN = re.compile(r"X\s*:\s*(-?\d+)\s*,\s*Y\s*:\s*(-?\d+)", re.IGNORECASE)
_SIZE_PATTERN = re.compile(r"Width\s*:\s*(\d+)\s*,\s*Height\s*:\s*(\d+)", re.IGNORECASE)


@dataclass(frozen=True, slots=True)
class ScrollPosition:
    x: int = 0
    y: int = 0

    @classmethod
    def parse(cls, raw: Any) -> "ScrollPosition":
        """Parse ``"X:10,Y:20"``; anything unparsable yields the origin."""

        if isinstance(raw, ScrollPosition):
            return raw
        match = _SCROLL_PATTERN.search(str(raw or ""))
        if not match:
            return cls()
        return cls(int(match.group(1)), int(match.group(2)))

    def encode(self) -> str:
        return f"X:{self.x}, Y:{self.y}"


@dataclass(frozen=True, slots=True)
class WindowSize:
    width: int = 0
    height: int = 0

    @classmethod
    def parse(cls, raw: Any) -> "WindowSize":
        """Parse ``"Width:1280, Height:720"``; anything unparsable yields zeros."""

        if isinstance(raw, WindowSize):
            return raw
        match = _SIZE_PATTERN.search(str(raw or ""))
        if not match:
            return cls()
        return cls(int(match.group(1)), int(match.group(2)))

    def encode(self) -> str:
        return f"Width:{self.width}, Height:{self.height}"

    def clamped(
        self,
        min_width: int,
        min_height: int,
        default_width: int,
        default_height: int,
    ) -> "WindowSize":
        width = self.width or default_width
        height = self.height or default_height
        return WindowSize(max(width, min_width), max(height, min_height))


__all__ = ["ScrollPosition", "WindowSize"]
