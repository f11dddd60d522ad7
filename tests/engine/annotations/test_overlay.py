"""Tests for render_plan and OverlaySync against a fake renderer."""

from __future__ import annotations

import pytest

from engine.annotations.models import LAYER_CONFIG, Layer
from engine.annotations.overlay import Overlay, OverlayFactory, OverlaySync, render_plan
from tests.engine.annotations.conftest import make_feature


pytestmark = pytest.mark.unit


class FakeOverlay(Overlay):
    def __init__(self, feature_id, color):
        self.feature_id = feature_id
        self.color = color
        self.visible = True
        self.removed = False

    def show(self):
        self.visible = True

    def hide(self):
        self.visible = False

    def remove(self):
        self.removed = True


class FakeFactory(OverlayFactory):
    def __init__(self):
        self.created: list[FakeOverlay] = []

    def create(self, feature, color):
        overlay = FakeOverlay(feature.feature_id, color)
        self.created.append(overlay)
        return overlay


@pytest.fixture
def factory():
    return FakeFactory()


class TestRenderPlan:

    def test_plan_in_display_order(self, store):
        plan = render_plan(store.state)
        assert [item.feature_id for item in plan] == ["pit", "hall", "route", "west"]
        assert plan[2].color == LAYER_CONFIG[Layer.FLOWS].color
        assert all(item.visible for item in plan)

    def test_plan_follows_visibility(self, store):
        store.toggle_layer(Layer.BORDERS)
        plan = {item.feature_id: item for item in render_plan(store.state)}
        assert plan["west"].visible is False
        assert plan["pit"].visible is True


class TestOverlaySync:

    def test_creates_one_overlay_per_feature(self, store, factory):
        sync = OverlaySync(factory)
        sync.sync(store.state)
        sync.sync(store.state)
        assert len(factory.created) == 4
        assert sync.overlay_ids == {"pit", "hall", "route", "west"}

    def test_visibility_follows_layers(self, store, factory):
        sync = OverlaySync(factory)
        sync.sync(store.state)
        store.toggle_layer(Layer.GEOGRAPHY)
        sync.sync(store.state)
        assert sync.get("pit").visible is False
        assert sync.get("hall").visible is True
        store.toggle_layer(Layer.GEOGRAPHY)
        sync.sync(store.state)
        assert sync.get("pit").visible is True

    def test_new_feature_on_hidden_layer_starts_hidden(self, store, factory):
        sync = OverlaySync(factory)
        store.toggle_layer(Layer.FLOWS)
        store.add_feature(make_feature("r2", Layer.FLOWS, "Second route"))
        sync.sync(store.state)
        assert sync.get("r2").visible is False

    def test_removes_stale_overlays(self, store, factory):
        sync = OverlaySync(factory)
        sync.sync(store.state)
        hall = sync.get("hall")
        store.delete_feature("hall")
        sync.sync(store.state)
        assert hall.removed is True
        assert "hall" not in sync.overlay_ids

    def test_sync_as_store_subscriber(self, store, factory):
        sync = OverlaySync(factory)
        store.subscribe(sync.sync)
        store.add_feature(make_feature("new", Layer.INSTITUTIONS, "Precinct"))
        assert "new" in sync.overlay_ids

    def test_clear(self, store, factory):
        sync = OverlaySync(factory)
        sync.sync(store.state)
        sync.clear()
        assert sync.overlay_ids == set()
        assert all(o.removed for o in factory.created)
