"""Drawing state machine -- turns raw map clicks into a finished geometry.

States:
  Idle (mode=none, no vertices) -> Collecting(mode, vertices) -> Idle

  start(mode)       Idle/Collecting -> Collecting(mode, [])
  add_vertex(p)     point: completes immediately
                    line/polygon: appends, stays Collecting
  finish()          line needs >= 2 vertices, polygon >= 3; otherwise no-op
  cancel()          any -> Idle, nothing delivered

Completion delivers exactly one geometry to the one pending consumer.
Registering a new consumer before the pending one resolves replaces it.
The map collaborator is handed this machine at construction and feeds it
clicks; there is no global callback hook.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Callable, Sequence

from loguru import logger

from engine.annotations.geometry import Position, assemble, to_position
from engine.annotations.models import DrawingMode, Geometry

CompletionCallback = Callable[[Geometry], None]
StateListener = Callable[["DrawingState"], None]


@dataclass(frozen=True)
class DrawingState:
    """Snapshot of the in-progress drawing."""

    mode: DrawingMode = DrawingMode.NONE
    vertices: tuple[Position, ...] = ()

    @property
    def is_idle(self) -> bool:
        return self.mode == DrawingMode.NONE


IDLE = DrawingState()


class DrawingStateMachine:
    """Owns the in-progress vertex list and the current drawing mode."""

    def __init__(self, on_complete: CompletionCallback | None = None) -> None:
        self._state = IDLE
        self._default_consumer = on_complete
        self._consumer: CompletionCallback | None = None
        self._listeners: list[StateListener] = []

    @property
    def state(self) -> DrawingState:
        return self._state

    @property
    def mode(self) -> DrawingMode:
        return self._state.mode

    @property
    def vertices(self) -> tuple[Position, ...]:
        return self._state.vertices

    @property
    def is_drawing(self) -> bool:
        return not self._state.is_idle

    def add_listener(self, listener: StateListener) -> None:
        """Notify ``listener`` on every mode or vertex change (cursor, preview)."""
        self._listeners.append(listener)

    def remove_listener(self, listener: StateListener) -> None:
        if listener in self._listeners:
            self._listeners.remove(listener)

    def _set_state(self, state: DrawingState) -> None:
        self._state = state
        for listener in list(self._listeners):
            listener(state)

    # -- transitions --------------------------------------------------------

    def start(
        self,
        mode: DrawingMode | str,
        on_complete: CompletionCallback | None = None,
    ) -> None:
        """Begin collecting vertices for ``mode``.

        Any in-progress vertices are discarded. ``on_complete`` becomes the
        single pending consumer, replacing any earlier one; without it the
        consumer given at construction is used.
        """
        mode = DrawingMode(mode)
        if mode == DrawingMode.NONE:
            self.cancel()
            return
        self._consumer = on_complete or self._default_consumer
        self._set_state(DrawingState(mode=mode))

    def add_vertex(self, point: Sequence[float]) -> Geometry | None:
        """Feed one map click.

        Returns:
            The completed geometry in point mode, else None. Clicks while
            idle are ignored.
        """
        if self._state.is_idle:
            return None
        vertices = self._state.vertices + (to_position(point),)
        self._set_state(DrawingState(self._state.mode, vertices))
        if self._state.mode == DrawingMode.POINT:
            return self._complete()
        return None

    def finish(self) -> Geometry | None:
        """Finish a line or polygon (double-click or explicit form action).

        Returns:
            The completed geometry, or None if the vertex count is not yet
            enough (the machine stays Collecting).
        """
        if self._state.mode not in (DrawingMode.LINE, DrawingMode.POLYGON):
            return None
        return self._complete()

    def cancel(self) -> None:
        """Discard everything and return to Idle. No geometry is produced."""
        self._consumer = None
        if self._state != IDLE:
            self._set_state(IDLE)

    def _complete(self) -> Geometry | None:
        geometry = assemble(self._state.mode, self._state.vertices)
        if geometry is None:
            return None
        consumer = self._consumer
        self._consumer = None
        self._set_state(IDLE)
        logger.debug(f"Drawing complete: {geometry.type}")
        if consumer is not None:
            consumer(geometry)
        return geometry
