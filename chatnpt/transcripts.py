import re
from dataclasses import dataclass
from typing import List

_CUE_START = re.compile(r"^\d{2}:\d{2}:\d{2}")
_CUE_ID = re.compile(r"^\d+$")


@dataclass
class Cue:
    timestamp: str
    text: str


def parse_vtt(vtt_text: str) -> List[Cue]:
    """Split a WebVTT transcript into timestamped cues."""
    cues: List[Cue] = []
    timestamp = None
    lines: List[str] = []

    def flush() -> None:
        if timestamp and lines:
            cues.append(Cue(timestamp=timestamp, text=" ".join(lines)))

    for raw in (vtt_text or "").split("\n"):
        line = raw.strip()
        if _CUE_START.match(line):
            flush()
            timestamp = line.split(" --> ")[0].strip()
            lines = []
        elif line and not line.startswith("WEBVTT") and not _CUE_ID.match(line):
            lines.append(line)

    flush()
    return cues


def format_timestamp(timestamp: str) -> str:
    """'01:02:03.000' -> '1h 2m 3s', '00:02:03' -> '2m 3s', '00:00:03' -> '3s'."""
    parts = (timestamp or "").split(":")
    if len(parts) < 3:
        return timestamp or ""
    try:
        hours = int(parts[0])
        minutes = int(parts[1])
        seconds = int(float(parts[2]))
    except ValueError:
        return timestamp

    if hours > 0:
        return f"{hours}h {minutes}m {seconds}s"
    if minutes > 0:
        return f"{minutes}m {seconds}s"
    return f"{seconds}s"
