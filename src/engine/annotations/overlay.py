"""Map collaborator contract and overlay reconciliation.

The renderer is external. It implements ``Overlay`` (something that can be
shown, hidden and removed) and ``OverlayFactory``. ``OverlaySync`` keeps
one overlay per feature in step with the store: new features get an
overlay, visibility follows the layer toggles, deleted features have
their overlay removed.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass

from engine.annotations.models import LAYER_CONFIG, Feature, Geometry, Layer
from engine.annotations.store import AppState


class Overlay(ABC):
    """A rendered map object for one feature."""

    @abstractmethod
    def show(self) -> None:
        """Make the overlay visible."""

    @abstractmethod
    def hide(self) -> None:
        """Hide the overlay without destroying it."""

    @abstractmethod
    def remove(self) -> None:
        """Detach the overlay from the map permanently."""


class OverlayFactory(ABC):
    """Creates overlays for features."""

    @abstractmethod
    def create(self, feature: Feature, color: str) -> Overlay:
        """Render ``feature`` in ``color`` and return its overlay."""


@dataclass(frozen=True)
class RenderItem:
    """What the map needs to draw one feature."""

    feature_id: str
    layer: Layer
    geometry: Geometry
    color: str
    visible: bool
    title: str = ""


def render_plan(state: AppState) -> list[RenderItem]:
    """Render instructions for every feature, in display order."""
    return [
        RenderItem(
            feature_id=f.feature_id,
            layer=f.layer,
            geometry=f.geometry,
            color=LAYER_CONFIG[f.layer].color,
            visible=state.is_visible(f.layer),
            title=f.title,
        )
        for f in state.data.features
    ]


class OverlaySync:
    """One overlay per feature id, reconciled against each new state."""

    def __init__(self, factory: OverlayFactory) -> None:
        self._factory = factory
        self._overlays: dict[str, Overlay] = {}

    @property
    def overlay_ids(self) -> set[str]:
        return set(self._overlays)

    def get(self, feature_id: str) -> Overlay | None:
        return self._overlays.get(feature_id)

    def sync(self, state: AppState) -> None:
        current: set[str] = set()
        for feature in state.data.features:
            current.add(feature.feature_id)
            visible = state.is_visible(feature.layer)
            overlay = self._overlays.get(feature.feature_id)
            if overlay is None:
                overlay = self._factory.create(feature, LAYER_CONFIG[feature.layer].color)
                self._overlays[feature.feature_id] = overlay
            if visible:
                overlay.show()
            else:
                overlay.hide()

        for feature_id in list(self._overlays):
            if feature_id not in current:
                self._overlays.pop(feature_id).remove()

    def clear(self) -> None:
        for overlay in self._overlays.values():
            overlay.remove()
        self._overlays.clear()
