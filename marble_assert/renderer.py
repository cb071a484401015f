"""
Marble diagram renderer.

Formats several timelines into strings aligned so that the same virtual
frame occupies the same column in every output:

  - ``-`` for an idle tick
  - a record's key for one event
  - ``(a b)`` for simultaneous events, keys in insertion order
  - ``-<N>ms-`` for an idle gap longer than the compaction threshold

Rendering is a pure function of the timelines' records.
"""
from __future__ import annotations

import logging
from collections import deque
from typing import Deque, List, Optional, Sequence

from marble_assert.models import FILLER, SPACER, RenderConfig, TimelineRecord
from marble_assert.timeline import Timeline

logger = logging.getLogger(__name__)


def ascii_center(symbol: str, width: int, spacer: str = SPACER) -> str:
    """Center ``symbol`` to ``width``, appending first, then prepending."""
    right = True
    while len(symbol) < width:
        symbol = symbol + spacer if right else spacer + symbol
        right = not right
    return symbol


def _compose_symbol(keys: List[str]) -> str:
    if not keys:
        return FILLER
    if len(keys) == 1:
        return keys[0]
    return "(" + " ".join(keys) + ")"


def print_all(
    timelines: Sequence[Timeline],
    config: Optional[RenderConfig] = None,
) -> List[str]:
    """
    Print all timelines such that they are aligned frame by frame.

    ``config.threshold`` is at least 3 (``RenderConfig`` enforces it) so the
    ``-<N>ms-`` count is always positive.
    """
    config = config or RenderConfig()
    queues: List[Deque[TimelineRecord]] = [deque(t.items) for t in timelines]
    output = ["" for _ in queues]

    frame = -1
    while True:
        pending = [q[0].frame for q in queues if q]
        if not pending:
            break
        next_frame = min(pending)

        # -3: one filler each side of the marker, and the tick written below.
        if next_frame - frame > config.threshold:
            marker = f"{FILLER}{next_frame - frame - 3}ms{FILLER}"
            output = [line + marker for line in output]
            logger.debug(
                "Compacted gap: frames %d..%d -> %r", frame, next_frame, marker,
            )
            frame = next_frame - 1

        symbols: List[str] = []
        for queue in queues:
            keys: List[str] = []
            while queue and queue[0].frame == next_frame:
                keys.append(queue.popleft().key)
            symbols.append(_compose_symbol(keys))
        width = max(len(s) for s in symbols)

        lead = FILLER * (next_frame - frame - 1)
        output = [
            line + lead + ascii_center(symbol, width)
            for line, symbol in zip(output, symbols)
        ]
        frame = next_frame

    return [line.ljust(config.min_width, FILLER) for line in output]


def print_timeline(timeline: Timeline, config: Optional[RenderConfig] = None) -> str:
    """Print a single timeline."""
    return print_all([timeline], config)[0]
