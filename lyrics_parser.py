"""
Parse LRCLIB-style synced lyrics ("[mm:ss.xx]text" per line) into timed lines.
"""
import re
from dataclasses import dataclass
from typing import Any, Dict, List, Optional

LYRIC_LINE_RE = re.compile(r"^\[(\d{2}):(\d{2})\.(\d{2})\](.*)")


@dataclass(frozen=True)
class LyricLine:
    start_time_ms: int
    words: str  # "" marks an instrumental gap

    def to_dict(self) -> Dict[str, Any]:
        return {"startTimeMs": self.start_time_ms, "words": self.words}


def parse_lyric_line(line: str, fraction_scale: int = 1) -> Optional[LyricLine]:
    """
    One "[mm:ss.xx]text" line -> LyricLine, or None when it doesn't match.
    fraction_scale=1 adds the two fraction digits as milliseconds (what the
    app has always served); 10 reads them as hundredths of a second.
    """
    match = LYRIC_LINE_RE.match(line)
    if not match:
        return None
    minutes, seconds, fraction, words = match.groups()
    start_time_ms = int(minutes) * 60 * 1000 + int(seconds) * 1000 + int(fraction) * fraction_scale
    return LyricLine(start_time_ms=start_time_ms, words=words.strip())


def parse_synced_lyrics(payload: Optional[str], fraction_scale: int = 1) -> List[Optional[LyricLine]]:
    """
    Map every line of the payload to a LyricLine or None, keeping length and
    order. Malformed lines don't affect their neighbours.
    """
    if not payload:
        return []
    return [parse_lyric_line(line, fraction_scale) for line in payload.split("\n")]


def lines_to_json(lines: List[Optional[LyricLine]]) -> List[Optional[Dict[str, Any]]]:
    return [line.to_dict() if line is not None else None for line in lines]
