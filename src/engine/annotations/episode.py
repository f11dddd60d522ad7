"""Episode codes and the episode gate.

An episode code looks like ``S01E05``: two-digit season and episode,
case-insensitive, canonical form upper-case. Codes order by
(season, episode).

The gate produces advisory warnings before a new feature is committed.
Warnings never block a submission; the caller decides what to show.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from enum import Enum
from typing import Mapping, NamedTuple

from engine.annotations.models import Layer

EPISODE_RE = re.compile(r"^S(\d{2})E(\d{2})$", re.IGNORECASE)

# episode code -> layer value -> number of features added this session
SessionAdditions = Mapping[str, Mapping[str, int]]


class ParsedEpisode(NamedTuple):
    season: int
    episode: int


def validate_episode_format(value: str) -> bool:
    return isinstance(value, str) and EPISODE_RE.match(value) is not None


def parse_episode(value: str) -> ParsedEpisode | None:
    """Split an episode code into (season, episode), or None if malformed."""
    if not isinstance(value, str):
        return None
    m = EPISODE_RE.match(value)
    if not m:
        return None
    return ParsedEpisode(int(m.group(1)), int(m.group(2)))


def format_episode(season: int, episode: int) -> str:
    return f"S{season:02d}E{episode:02d}"


def normalize_episode(value: str) -> str:
    """Canonical upper-case form of an episode code.

    Raises:
        ValueError: If the value is not a valid episode code.
    """
    parsed = parse_episode(value)
    if parsed is None:
        raise ValueError(f"Invalid episode code {value!r} (format: SxxExx, e.g. S01E01)")
    return format_episode(parsed.season, parsed.episode)


def compare_episodes(a: str, b: str) -> int:
    """Compare two episode codes.

    Returns a negative number if ``a`` is before ``b``, zero if they are
    the same episode, positive if ``a`` is after ``b``. If either code is
    malformed the comparison is 0.
    """
    pa = parse_episode(a)
    pb = parse_episode(b)
    if pa is None or pb is None:
        return 0
    if pa.season != pb.season:
        return pa.season - pb.season
    return pa.episode - pb.episode


class GateWarningKind(str, Enum):
    DUPLICATE_LAYER = "duplicate_layer"
    FUTURE_EPISODE = "future_episode"


@dataclass(frozen=True)
class GateWarning:
    """A non-blocking advisory shown before a feature is committed."""

    kind: GateWarningKind
    message: str
    count: int | None = None

    def to_dict(self) -> dict:
        return {"type": self.kind.value, "message": self.message, "count": self.count}


def addition_count(
    session_additions: SessionAdditions, episode: str, layer: Layer | str,
) -> int:
    """Features added this session for (episode, layer); 0 if none."""
    return session_additions.get(episode, {}).get(Layer(layer).value, 0)


def check_gate(
    current_episode: str,
    candidate_episode: str | None,
    layer: Layer | str,
    session_additions: SessionAdditions,
) -> list[GateWarning]:
    """Evaluate the episode gate for a feature about to be added.

    Both rules are evaluated independently:

    - future episode: ``candidate_episode`` is later than ``current_episode``
      (both must parse).
    - duplicate layer: something was already added to ``layer`` for the
      current episode this session. The counter is read before the
      candidate's own increment.
    """
    layer = Layer(layer)
    warnings: list[GateWarning] = []

    if candidate_episode and current_episode:
        if (
            parse_episode(candidate_episode) is not None
            and parse_episode(current_episode) is not None
            and compare_episodes(candidate_episode, current_episode) > 0
        ):
            warnings.append(GateWarning(
                GateWarningKind.FUTURE_EPISODE,
                f"Warning: This feature's first appearance ({candidate_episode}) "
                f"is ahead of your current episode ({current_episode}).",
            ))

    if current_episode:
        count = addition_count(session_additions, current_episode, layer)
        if count >= 1:
            warnings.append(GateWarning(
                GateWarningKind.DUPLICATE_LAYER,
                f"Warning: You've already added {count} feature(s) to the "
                f'"{layer.value}" layer for episode {current_episode}.',
                count=count,
            ))

    return warnings
