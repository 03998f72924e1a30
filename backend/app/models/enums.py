from __future__ import annotations

import enum


class SessionType(str, enum.Enum):
    WORK = "work"
    BREAK = "break"
    LUNCH = "lunch"
    BRB = "brb"


class BreakType(str, enum.Enum):
    BREAK = "break"  # short pause, 5-15 minutes
    LUNCH = "lunch"  # 30-60 minutes
    BRB = "brb"  # 1-5 minutes, quick interruption


BREAK_TYPE_ALIASES = {
    "short": BreakType.BREAK,
}
