"""AnnotationSession -- wires store, drawing machine and persistence together.

One session lives for the lifetime of the process. The HTTP layer holds a
single instance; callers serialize access through ``lock`` since FastAPI
runs sync endpoints on a threadpool.
"""

from __future__ import annotations

import os
import threading

from loguru import logger

from engine.annotations.drawing import DrawingStateMachine
from engine.annotations.models import Geometry
from engine.annotations.persistence import JsonFileStore, load_initial, load_seed
from engine.annotations.store import DEFAULT_EPISODE, AppState, FeatureStore


class AnnotationSession:
    """A FeatureStore plus its drawing machine and optional file store."""

    def __init__(
        self,
        file_store: JsonFileStore | None = None,
        default_episode: str = DEFAULT_EPISODE,
    ) -> None:
        self.lock = threading.RLock()
        self.store = FeatureStore(default_episode=default_episode)
        self.drawing = DrawingStateMachine(on_complete=self._on_geometry)
        self.file_store = file_store
        self.last_geometry: Geometry | None = None
        self._detach = file_store.attach(self.store) if file_store is not None else None

    def _on_geometry(self, geometry: Geometry) -> None:
        self.last_geometry = geometry

    @property
    def state(self) -> AppState:
        return self.store.state

    def load(self, seed_path: str | os.PathLike | None = None) -> AppState:
        """Resolve initial data from the persisted file, else the seed."""
        state = load_initial(self.store, self.file_store, seed_path)
        if state.error:
            logger.error(f"Annotation data unavailable: {state.error}")
        return state

    def reset_to_seed(self, seed_path: str | os.PathLike) -> AppState:
        """Replace the working set with the seed collection.

        Raises:
            GatewayError: The seed is missing or invalid; state is unchanged.
        """
        collection = load_seed(seed_path)
        logger.info(f"Resetting annotations to seed ({len(collection)} features)")
        return self.store.import_data(collection)

    def close(self) -> None:
        self.drawing.cancel()
        if self._detach is not None:
            self._detach()
            self._detach = None
