"""Keyboard shortcut dispatch.

  1-4     toggle geography / institutions / flows / borders
  N       open the new-feature form
  Escape  cancel drawing and close the edit form

Keys typed into an input, textarea or select are never handled.
"""

from __future__ import annotations

from typing import Callable

from engine.annotations.drawing import DrawingStateMachine
from engine.annotations.models import Layer
from engine.annotations.store import FeatureStore

LAYER_KEYS: dict[str, Layer] = {
    "1": Layer.GEOGRAPHY,
    "2": Layer.INSTITUTIONS,
    "3": Layer.FLOWS,
    "4": Layer.BORDERS,
}


def handle_key(
    key: str,
    store: FeatureStore,
    drawing: DrawingStateMachine,
    on_new_feature: Callable[[], None] | None = None,
    target_is_input: bool = False,
) -> bool:
    """Dispatch one key press. Returns True if the key was handled."""
    if target_is_input:
        return False

    if key == "Escape":
        if drawing.is_drawing:
            drawing.cancel()
        if store.state.editing_feature is not None:
            store.set_editing_feature(None)
        return True

    layer = LAYER_KEYS.get(key)
    if layer is not None:
        store.toggle_layer(layer)
        return True

    if key in ("n", "N"):
        if on_new_feature is not None:
            on_new_feature()
        return True

    return False
