"""Feature store: the single source of truth for annotation state.

``apply(state, action)`` is a pure transition function over frozen
``AppState`` snapshots. ``FeatureStore`` holds the current snapshot,
applies actions in the order they are dispatched and notifies
subscribers (persistence, overlay sync) after each change.

Validation happens before dispatch: at the import gateway, in
``create_feature`` or in the form controller. No action can fail here.
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass, field, replace
from datetime import datetime, timezone
from typing import Callable, Never, Union

from loguru import logger

from engine.annotations.episode import check_gate, normalize_episode, GateWarning
from engine.annotations.exporters.geojson import export_collection
from engine.annotations.geometry import geometry_matches_layer, validate_geometry
from engine.annotations.models import Feature, FeatureCollection, Geometry, Layer
from engine.annotations.parsers.geojson import GatewayError

DEFAULT_EPISODE = "S01E01"


# ---------------------------------------------------------------------------
# State
# ---------------------------------------------------------------------------

def _all_visible() -> dict[Layer, bool]:
    return {layer: True for layer in Layer}


@dataclass(frozen=True)
class AppState:
    """Immutable application state snapshot.

    Attributes:
        data: The annotation feature collection.
        visible_layers: Layer -> whether it is rendered.
        current_episode: Episode code the user is up to.
        session_additions: episode -> layer value -> features added this
            session. Reset whenever the collection is imported.
        is_loading: True until the initial data has resolved.
        error: Blocking load error message, if any.
        editing_feature: Feature currently open in the edit form.
    """

    data: FeatureCollection = field(default_factory=FeatureCollection)
    visible_layers: dict[Layer, bool] = field(default_factory=_all_visible)
    current_episode: str = DEFAULT_EPISODE
    session_additions: dict[str, dict[str, int]] = field(default_factory=dict)
    is_loading: bool = True
    error: str | None = None
    editing_feature: Feature | None = None

    def is_visible(self, layer: Layer | str) -> bool:
        return self.visible_layers.get(Layer(layer), True)


def initial_state(current_episode: str = DEFAULT_EPISODE) -> AppState:
    return AppState(current_episode=current_episode)


# ---------------------------------------------------------------------------
# Actions
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class SetData:
    collection: FeatureCollection


@dataclass(frozen=True)
class AddFeature:
    feature: Feature


@dataclass(frozen=True)
class UpdateFeature:
    feature: Feature


@dataclass(frozen=True)
class DeleteFeature:
    feature_id: str


@dataclass(frozen=True)
class ToggleLayer:
    layer: Layer


@dataclass(frozen=True)
class SetCurrentEpisode:
    episode: str


@dataclass(frozen=True)
class TrackAddition:
    episode: str
    layer: Layer


@dataclass(frozen=True)
class ImportData:
    collection: FeatureCollection


@dataclass(frozen=True)
class SetEditingFeature:
    feature: Feature | None


@dataclass(frozen=True)
class SetLoading:
    is_loading: bool


@dataclass(frozen=True)
class SetError:
    message: str | None


Action = Union[
    SetData,
    AddFeature,
    UpdateFeature,
    DeleteFeature,
    ToggleLayer,
    SetCurrentEpisode,
    TrackAddition,
    ImportData,
    SetEditingFeature,
    SetLoading,
    SetError,
]


# ---------------------------------------------------------------------------
# Reducer
# ---------------------------------------------------------------------------

def _unhandled(action: Never) -> None:
    # Type checkers reject any call here that is reachable with a real
    # Action member, so a new action without a branch is caught statically.
    logger.warning(f"Ignoring unknown action: {action!r}")


def apply(state: AppState, action: Action) -> AppState:
    """Return the state that results from applying ``action`` to ``state``.

    Never mutates ``state``. Unknown actions return it unchanged.
    """
    if isinstance(action, SetData):
        return replace(state, data=action.collection, is_loading=False)

    if isinstance(action, AddFeature):
        return replace(
            state,
            data=FeatureCollection(state.data.features + (action.feature,)),
        )

    if isinstance(action, UpdateFeature):
        target = action.feature.feature_id
        features = tuple(
            action.feature if f.feature_id == target else f
            for f in state.data.features
        )
        return replace(state, data=FeatureCollection(features), editing_feature=None)

    if isinstance(action, DeleteFeature):
        features = tuple(
            f for f in state.data.features if f.feature_id != action.feature_id
        )
        if len(features) == len(state.data.features):
            return state
        return replace(state, data=FeatureCollection(features))

    if isinstance(action, ToggleLayer):
        layer = Layer(action.layer)
        visible = dict(state.visible_layers)
        visible[layer] = not state.visible_layers.get(layer, True)
        return replace(state, visible_layers=visible)

    if isinstance(action, SetCurrentEpisode):
        return replace(state, current_episode=action.episode)

    if isinstance(action, TrackAddition):
        layer = Layer(action.layer).value
        per_layer = dict(state.session_additions.get(action.episode, {}))
        per_layer[layer] = per_layer.get(layer, 0) + 1
        additions = dict(state.session_additions)
        additions[action.episode] = per_layer
        return replace(state, session_additions=additions)

    if isinstance(action, ImportData):
        return replace(state, data=action.collection, session_additions={})

    if isinstance(action, SetEditingFeature):
        return replace(state, editing_feature=action.feature)

    if isinstance(action, SetLoading):
        return replace(state, is_loading=action.is_loading)

    if isinstance(action, SetError):
        return replace(state, error=action.message, is_loading=False)

    _unhandled(action)
    return state


# ---------------------------------------------------------------------------
# Feature creation
# ---------------------------------------------------------------------------

def generate_id() -> str:
    return uuid.uuid4().hex


def create_feature(
    layer: Layer | str,
    title: str,
    geometry: Geometry,
    first_seen: str | None = None,
    notes: str | None = None,
    created_by: str | None = None,
) -> Feature:
    """Create a new feature with a fresh id and creation timestamp.

    Raises:
        ValueError: If the title is blank, the geometry kind does not
            match what the layer requires or its coordinates are malformed.
    """
    layer = Layer(layer)
    title = (title or "").strip()
    if not title:
        raise ValueError("Feature title must not be empty")
    if not geometry_matches_layer(geometry, layer):
        raise ValueError(
            f"Layer '{layer.value}' does not accept {geometry.type} geometry"
        )
    validate_geometry(geometry)
    return Feature(
        feature_id=generate_id(),
        layer=layer,
        geometry=geometry,
        title=title,
        created_at=datetime.now(timezone.utc).isoformat(),
        first_seen=first_seen or None,
        notes=(notes or "").strip() or None,
        created_by=created_by or None,
    )


# ---------------------------------------------------------------------------
# Store
# ---------------------------------------------------------------------------

Subscriber = Callable[[AppState], None]


class FeatureStore:
    """Holds the current AppState and dispatches actions against it."""

    def __init__(
        self,
        state: AppState | None = None,
        default_episode: str = DEFAULT_EPISODE,
    ) -> None:
        self._state = state if state is not None else initial_state(default_episode)
        self._subscribers: list[Subscriber] = []

    @property
    def state(self) -> AppState:
        return self._state

    def subscribe(self, callback: Subscriber) -> Callable[[], None]:
        """Register a callback run after every state change.

        Returns:
            A function that removes the subscription.
        """
        self._subscribers.append(callback)

        def unsubscribe() -> None:
            if callback in self._subscribers:
                self._subscribers.remove(callback)

        return unsubscribe

    def dispatch(self, action: Action) -> AppState:
        """Apply one action and notify subscribers if the state changed."""
        previous = self._state
        self._state = apply(previous, action)
        if self._state is not previous:
            for callback in list(self._subscribers):
                callback(self._state)
        return self._state

    # -- initial load -------------------------------------------------------

    def load(
        self,
        persisted: FeatureCollection | None,
        seed: Callable[[], FeatureCollection] | None = None,
    ) -> AppState:
        """Resolve the initial data. Dispatches exactly one SetData/SetError.

        A persisted collection wins; otherwise ``seed`` is called. Seed
        failures (GatewayError, OSError) become the blocking error state.
        """
        if persisted is not None:
            logger.info(f"Loaded {len(persisted)} features from persisted store")
            return self.dispatch(SetData(persisted))
        if seed is None:
            return self.dispatch(SetData(FeatureCollection()))
        try:
            collection = seed()
        except (GatewayError, OSError) as e:
            logger.error(f"Failed to load seed data: {e}")
            return self.dispatch(SetError(str(e)))
        logger.info(f"Loaded {len(collection)} features from seed data")
        return self.dispatch(SetData(collection))

    # -- convenience wrappers ----------------------------------------------

    def add_feature(self, feature: Feature) -> AppState:
        return self.dispatch(AddFeature(feature))

    def update_feature(self, feature: Feature) -> AppState:
        return self.dispatch(UpdateFeature(feature))

    def delete_feature(self, feature_id: str) -> AppState:
        return self.dispatch(DeleteFeature(feature_id))

    def toggle_layer(self, layer: Layer | str) -> AppState:
        return self.dispatch(ToggleLayer(Layer(layer)))

    def set_current_episode(self, episode: str) -> AppState:
        """Validate and set the current episode.

        Raises:
            ValueError: If ``episode`` is not a valid SxxExx code.
        """
        return self.dispatch(SetCurrentEpisode(normalize_episode(episode)))

    def track_addition(self, episode: str, layer: Layer | str) -> AppState:
        return self.dispatch(TrackAddition(episode, Layer(layer)))

    def import_data(self, collection: FeatureCollection) -> AppState:
        logger.info(f"Importing {len(collection)} features")
        return self.dispatch(ImportData(collection))

    def set_editing_feature(self, feature: Feature | None) -> AppState:
        return self.dispatch(SetEditingFeature(feature))

    def gate_warnings(
        self, candidate_episode: str | None, layer: Layer | str,
    ) -> list[GateWarning]:
        """Gate warnings for a candidate feature against the current state."""
        state = self._state
        return check_gate(
            state.current_episode, candidate_episode, layer, state.session_additions,
        )

    def export_data(self) -> bytes:
        return export_collection(self._state.data)
