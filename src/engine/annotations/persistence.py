"""JSON file persistence for the annotation collection.

The persisted file uses the same schema as the export format. Writes are
a side effect of state changes and never feed back into the store.
"""

from __future__ import annotations

import os
import tempfile
from pathlib import Path
from typing import Callable

from loguru import logger

from engine.annotations.exporters.geojson import export_collection
from engine.annotations.models import FeatureCollection
from engine.annotations.parsers.geojson import GatewayError, parse_collection
from engine.annotations.store import AppState, FeatureStore


class JsonFileStore:
    """Persists a FeatureCollection to a single GeoJSON file."""

    def __init__(self, path: str | os.PathLike):
        self.path = Path(path)

    def load(self) -> FeatureCollection | None:
        """Load the persisted collection.

        Returns:
            The collection, or None if the file is missing or invalid.
        """
        if not self.path.exists():
            return None
        try:
            collection = parse_collection(self.path.read_bytes())
        except (GatewayError, OSError) as e:
            logger.warning(f"Ignoring persisted data at {self.path}: {e}")
            return None
        return collection

    def save(self, collection: FeatureCollection) -> None:
        """Write the collection atomically (temp file, then rename)."""
        self.path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp = tempfile.mkstemp(
            dir=self.path.parent, prefix=".", suffix=".geojson.tmp",
        )
        try:
            with os.fdopen(fd, "wb") as f:
                f.write(export_collection(collection))
            os.replace(tmp, self.path)
        except BaseException:
            if os.path.exists(tmp):
                os.unlink(tmp)
            raise

    def clear(self) -> None:
        if self.path.exists():
            self.path.unlink()

    def attach(self, store: FeatureStore) -> Callable[[], None]:
        """Save on every state change of ``store``.

        Nothing is written while the store is still loading or in the error
        state. Write failures are logged, not raised.

        Returns:
            A function that detaches the subscription.
        """
        last_saved: list[FeatureCollection | None] = [None]

        def on_change(state: AppState) -> None:
            if state.is_loading or state.error:
                return
            if state.data is last_saved[0]:
                return
            try:
                self.save(state.data)
            except OSError as e:
                logger.error(f"Failed to persist annotations to {self.path}: {e}")
                return
            last_saved[0] = state.data

        return store.subscribe(on_change)


def load_seed(path: str | os.PathLike) -> FeatureCollection:
    """Load the seed collection.

    Raises:
        GatewayError: The file is missing, unreadable or not a valid
            annotation collection.
    """
    path = Path(path)
    if not path.exists():
        raise GatewayError(f"Failed to load seed data: {path} not found")
    try:
        content = path.read_bytes()
    except OSError as e:
        raise GatewayError(f"Failed to load seed data: {e}") from e
    try:
        return parse_collection(content)
    except GatewayError as e:
        raise GatewayError(f"Invalid seed data format: {e}") from e


def load_initial(
    store: FeatureStore,
    file_store: JsonFileStore | None = None,
    seed_path: str | os.PathLike | None = None,
) -> AppState:
    """Resolve the store's initial data: persisted file first, then the seed."""
    persisted = file_store.load() if file_store is not None else None
    seed = (lambda: load_seed(seed_path)) if seed_path is not None else None
    return store.load(persisted, seed)
