"""Subtitle selection during playback and export for external players."""

from pathlib import Path
from typing import Iterable, List, Optional

from ..models import Subtitle


def active_subtitle(subtitles: Optional[Iterable[Subtitle]], t: float) -> Optional[Subtitle]:
    """Return the cue to display at playback time ``t``.

    Only well-formed cues with ``start_time <= t < end_time`` qualify. When
    several overlap, the earliest start wins; equal starts go to the earlier cue.
    """
    chosen: Optional[Subtitle] = None
    for cue in subtitles or ():
        if cue.covers(t) and (chosen is None or cue.start_time < chosen.start_time):
            chosen = cue
    return chosen


def _timestamp(seconds: float, separator: str) -> str:
    millis = int(round(seconds * 1000))
    hours, millis = divmod(millis, 3_600_000)
    minutes, millis = divmod(millis, 60_000)
    secs, millis = divmod(millis, 1000)
    return f"{hours:02d}:{minutes:02d}:{secs:02d}{separator}{millis:03d}"


def _playable(subtitles: Optional[Iterable[Subtitle]]) -> List[Subtitle]:
    cues = [cue for cue in subtitles or () if cue.well_formed]
    return sorted(cues, key=lambda cue: cue.start_time)


def to_srt(subtitles: Optional[Iterable[Subtitle]]) -> str:
    """Render cues as SubRip text. Malformed cues are left out."""
    blocks = []
    for number, cue in enumerate(_playable(subtitles), start=1):
        blocks.append(
            f"{number}\n"
            f"{_timestamp(cue.start_time, ',')} --> {_timestamp(cue.end_time, ',')}\n"
            f"{cue.text}\n"
        )
    return "\n".join(blocks)


def to_webvtt(subtitles: Optional[Iterable[Subtitle]]) -> str:
    """Render cues as WebVTT text. Malformed cues are left out."""
    lines = ["WEBVTT", ""]
    for cue in _playable(subtitles):
        lines.append(f"{_timestamp(cue.start_time, '.')} --> {_timestamp(cue.end_time, '.')}")
        lines.append(cue.text)
        lines.append("")
    return "\n".join(lines)


def write_subtitles(subtitles: Optional[Iterable[Subtitle]], path: Path) -> Path:
    """Write cues to ``path``; ``.vtt`` selects WebVTT, anything else SRT."""
    text = to_webvtt(subtitles) if path.suffix.lower() == ".vtt" else to_srt(subtitles)
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(text, encoding="utf-8")
    return path
