"""Headless feature form: draft, gate warnings, place-on-map and submit.

The widget layer owns inputs and rendering; this controller owns what a
submission means. New features get their geometry from the drawing state
machine and are tracked as a session addition. Edits keep the original
geometry, layer, id and creation time.
"""

from __future__ import annotations

from dataclasses import dataclass, replace

from loguru import logger

from engine.annotations.drawing import DrawingStateMachine
from engine.annotations.episode import GateWarning, validate_episode_format
from engine.annotations.geometry import drawing_mode_for_layer
from engine.annotations.models import Feature, Geometry, Layer
from engine.annotations.store import FeatureStore, create_feature


@dataclass
class FeatureDraft:
    """Form field values."""

    layer: Layer = Layer.GEOGRAPHY
    title: str = ""
    first_seen: str = ""
    notes: str = ""
    geometry: Geometry | None = None


class FeatureFormController:
    """Drives one open feature form against a store and drawing machine."""

    def __init__(
        self,
        store: FeatureStore,
        drawing: DrawingStateMachine,
        editing: Feature | None = None,
    ) -> None:
        self.store = store
        self.drawing = drawing
        self.editing = editing
        self.is_drawing = False
        if editing is not None:
            self.draft = FeatureDraft(
                layer=editing.layer,
                title=editing.title,
                first_seen=editing.first_seen or "",
                notes=editing.notes or "",
                geometry=editing.geometry,
            )
        else:
            self.draft = FeatureDraft(first_seen=store.state.current_episode)

    @classmethod
    def for_new(cls, store: FeatureStore, drawing: DrawingStateMachine) -> "FeatureFormController":
        return cls(store, drawing)

    @classmethod
    def for_edit(
        cls, store: FeatureStore, drawing: DrawingStateMachine, feature: Feature,
    ) -> "FeatureFormController":
        store.set_editing_feature(feature)
        return cls(store, drawing, editing=feature)

    @property
    def is_editing(self) -> bool:
        return self.editing is not None

    # -- fields -------------------------------------------------------------

    def set_layer(self, layer: Layer | str) -> None:
        """Change layer; drops any drawn geometry. Locked while editing."""
        if self.is_editing:
            raise ValueError("Layer cannot be changed when editing")
        self.draft.layer = Layer(layer)
        self.draft.geometry = None
        if self.is_drawing:
            self.drawing.cancel()
            self.is_drawing = False

    def set_first_seen(self, value: str) -> None:
        self.draft.first_seen = (value or "").upper()

    def clear_geometry(self) -> None:
        self.draft.geometry = None
        self.is_drawing = False

    def warnings(self) -> list[GateWarning]:
        """Gate warnings for the draft; only new features with a valid episode."""
        if self.is_editing or not validate_episode_format(self.draft.first_seen):
            return []
        return self.store.gate_warnings(self.draft.first_seen, self.draft.layer)

    # -- drawing ------------------------------------------------------------

    def place_on_map(self) -> None:
        """Start drawing in the mode the draft's layer requires."""
        self.draft.geometry = None
        self.is_drawing = True
        self.drawing.start(drawing_mode_for_layer(self.draft.layer), self._on_geometry)

    def _on_geometry(self, geometry: Geometry) -> None:
        self.draft.geometry = geometry
        self.is_drawing = False

    # -- submit / close -----------------------------------------------------

    def can_submit(self) -> bool:
        return bool(self.draft.title.strip()) and self.draft.geometry is not None

    def submit(self) -> Feature | None:
        """Commit the draft.

        Returns:
            The added or updated feature, or None if the draft is incomplete.
        """
        if not self.can_submit():
            return None

        first_seen = self.draft.first_seen or None
        notes = self.draft.notes.strip() or None

        if self.editing is not None:
            feature = replace(
                self.editing,
                title=self.draft.title.strip(),
                first_seen=first_seen,
                notes=notes,
            )
            self.store.update_feature(feature)
            logger.info(f"Updated feature '{feature.title}' ({feature.feature_id})")
            return feature

        feature = create_feature(
            self.draft.layer,
            self.draft.title,
            self.draft.geometry,
            first_seen=first_seen,
            notes=notes,
        )
        self.store.add_feature(feature)
        episode = self.store.state.current_episode
        if episode:
            self.store.track_addition(episode, feature.layer)
        logger.info(f"Added feature '{feature.title}' to {feature.layer.value}")
        return feature

    def close(self) -> None:
        if self.is_drawing:
            self.drawing.cancel()
            self.is_drawing = False
        if self.store.state.editing_feature is not None:
            self.store.set_editing_feature(None)
