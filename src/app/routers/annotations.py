"""Map annotation API endpoints -- features, layers, episode gate, drawing, import/export."""

from __future__ import annotations

import asyncio
from dataclasses import replace
from typing import Any, Optional

from fastapi import APIRouter, Depends, HTTPException, Request
from fastapi.responses import Response
from loguru import logger
from pydantic import BaseModel, Field

from app.config import settings
from engine.annotations.episode import normalize_episode, validate_episode_format
from engine.annotations.exporters.geojson import MEDIA_TYPE, export_collection
from engine.annotations.models import DrawingMode, Geometry, Layer
from engine.annotations.parsers.geojson import GatewayError, parse_collection
from engine.annotations.persistence import JsonFileStore
from engine.annotations.session import AnnotationSession
from engine.annotations.store import create_feature

router = APIRouter(prefix="/api/annotations", tags=["annotations"])

_session: Optional[AnnotationSession] = None


def get_session() -> AnnotationSession:
    """Get or create the annotation session singleton."""
    global _session
    if _session is None:
        file_store = JsonFileStore(settings.store_path) if settings.persist_enabled else None
        _session = AnnotationSession(file_store, default_episode=settings.default_episode)
        _session.load(settings.seed_path)
    return _session


# ==================
# Request/Response Models
# ==================

class GeometryModel(BaseModel):
    """GeoJSON geometry."""
    type: str
    coordinates: list[Any]


class CreateFeatureRequest(BaseModel):
    """Request to create a feature."""
    layer: str
    title: str
    geometry: GeometryModel
    first_seen: Optional[str] = None
    notes: Optional[str] = None
    created_by: Optional[str] = None


class UpdateFeatureRequest(BaseModel):
    """Request to update a feature's descriptive fields."""
    title: Optional[str] = None
    first_seen: Optional[str] = None
    notes: Optional[str] = None


class EpisodeRequest(BaseModel):
    episode: str


class GateRequest(BaseModel):
    """Candidate feature to check against the episode gate."""
    layer: str
    first_seen: Optional[str] = None


class GateWarningResponse(BaseModel):
    type: str
    message: str
    count: Optional[int] = None


class StartDrawingRequest(BaseModel):
    mode: str


class VertexRequest(BaseModel):
    lng: float
    lat: float


class DrawingResponse(BaseModel):
    """Drawing machine state plus the last completed geometry."""
    mode: str
    vertices: list[list[float]]
    geometry: Optional[dict] = None


class StateResponse(BaseModel):
    data: dict
    visible_layers: dict[str, bool]
    current_episode: str
    session_additions: dict[str, dict[str, int]]
    is_loading: bool
    error: Optional[str]
    editing_feature_id: Optional[str]


class CreateFeatureResponse(BaseModel):
    feature: dict
    warnings: list[GateWarningResponse] = Field(default_factory=list)


# ==================
# Helpers
# ==================

def _parse_layer(value: str) -> Layer:
    try:
        return Layer(value)
    except ValueError:
        raise HTTPException(
            status_code=400,
            detail=f"Invalid layer. Must be one of: {[l.value for l in Layer]}",
        )


def _drawing_response(session: AnnotationSession) -> DrawingResponse:
    state = session.drawing.state
    return DrawingResponse(
        mode=state.mode.value,
        vertices=[list(v) for v in state.vertices],
        geometry=session.last_geometry.to_dict() if session.last_geometry else None,
    )


# ==================
# State / Features
# ==================

@router.get("/state", response_model=StateResponse)
def get_state(session: AnnotationSession = Depends(get_session)):
    """Full application state snapshot."""
    with session.lock:
        state = session.state
        return StateResponse(
            data=state.data.to_dict(),
            visible_layers={l.value: v for l, v in state.visible_layers.items()},
            current_episode=state.current_episode,
            session_additions={e: dict(c) for e, c in state.session_additions.items()},
            is_loading=state.is_loading,
            error=state.error,
            editing_feature_id=state.editing_feature.feature_id if state.editing_feature else None,
        )


@router.get("/features")
def list_features(session: AnnotationSession = Depends(get_session)):
    """The feature collection as GeoJSON."""
    with session.lock:
        return session.state.data.to_dict()


@router.post("/features", response_model=CreateFeatureResponse)
def add_feature(request: CreateFeatureRequest, session: AnnotationSession = Depends(get_session)):
    """Create a feature; returns it with the gate warnings computed beforehand."""
    layer = _parse_layer(request.layer)
    first_seen = request.first_seen or None
    if first_seen is not None:
        if not validate_episode_format(first_seen):
            raise HTTPException(status_code=400, detail="Invalid first_seen. Format: SxxExx (e.g., S01E01)")
        first_seen = normalize_episode(first_seen)

    with session.lock:
        warnings = session.store.gate_warnings(first_seen, layer)
        try:
            feature = create_feature(
                layer,
                request.title,
                Geometry.from_dict(request.geometry.model_dump()),
                first_seen=first_seen,
                notes=request.notes,
                created_by=request.created_by,
            )
        except (ValueError, RecursionError) as e:
            raise HTTPException(status_code=400, detail=str(e))

        session.store.add_feature(feature)
        episode = session.state.current_episode
        if episode:
            session.store.track_addition(episode, layer)

    logger.info(f"Created feature '{feature.title}' ({layer.value})")
    return CreateFeatureResponse(
        feature=feature.to_dict(),
        warnings=[GateWarningResponse(**w.to_dict()) for w in warnings],
    )


@router.get("/features/{feature_id}")
def get_feature(feature_id: str, session: AnnotationSession = Depends(get_session)):
    with session.lock:
        feature = session.state.data.get(feature_id)
    if feature is None:
        raise HTTPException(status_code=404, detail="Feature not found")
    return feature.to_dict()


@router.put("/features/{feature_id}")
def update_feature(
    feature_id: str,
    request: UpdateFeatureRequest,
    session: AnnotationSession = Depends(get_session),
):
    """Update title, first-seen episode or notes. Geometry and layer are fixed."""
    with session.lock:
        existing = session.state.data.get(feature_id)
        if existing is None:
            raise HTTPException(status_code=404, detail="Feature not found")

        changes: dict[str, Any] = {}
        if request.title is not None:
            if not request.title.strip():
                raise HTTPException(status_code=400, detail="Title must not be empty")
            changes["title"] = request.title.strip()
        if request.first_seen is not None:
            if request.first_seen and not validate_episode_format(request.first_seen):
                raise HTTPException(status_code=400, detail="Invalid first_seen. Format: SxxExx (e.g., S01E01)")
            changes["first_seen"] = normalize_episode(request.first_seen) if request.first_seen else None
        if request.notes is not None:
            changes["notes"] = request.notes.strip() or None

        feature = replace(existing, **changes)
        session.store.update_feature(feature)

    return feature.to_dict()


@router.delete("/features/{feature_id}")
def delete_feature(feature_id: str, session: AnnotationSession = Depends(get_session)):
    with session.lock:
        if session.state.data.get(feature_id) is None:
            raise HTTPException(status_code=404, detail="Feature not found")
        session.store.delete_feature(feature_id)
    logger.info(f"Deleted feature {feature_id}")
    return {"status": "deleted", "feature_id": feature_id}


@router.put("/features/{feature_id}/editing")
def set_editing(feature_id: str, session: AnnotationSession = Depends(get_session)):
    """Open a feature in the edit form."""
    with session.lock:
        feature = session.state.data.get(feature_id)
        if feature is None:
            raise HTTPException(status_code=404, detail="Feature not found")
        session.store.set_editing_feature(feature)
    return {"editing_feature_id": feature_id}


@router.delete("/editing")
def clear_editing(session: AnnotationSession = Depends(get_session)):
    with session.lock:
        session.store.set_editing_feature(None)
    return {"editing_feature_id": None}


# ==================
# Layers / Episode / Gate
# ==================

@router.post("/layers/{layer}/toggle")
def toggle_layer(layer: str, session: AnnotationSession = Depends(get_session)):
    parsed = _parse_layer(layer)
    with session.lock:
        state = session.store.toggle_layer(parsed)
    return {"layer": parsed.value, "visible": state.is_visible(parsed)}


@router.put("/episode")
def set_episode(request: EpisodeRequest, session: AnnotationSession = Depends(get_session)):
    """Set the current viewing episode (SxxExx)."""
    try:
        with session.lock:
            state = session.store.set_current_episode(request.episode)
    except ValueError:
        raise HTTPException(status_code=400, detail="Format: SxxExx (e.g., S01E01)")
    return {"current_episode": state.current_episode}


@router.post("/gate", response_model=list[GateWarningResponse])
def check_gate(request: GateRequest, session: AnnotationSession = Depends(get_session)):
    """Advisory warnings for a candidate feature. Never blocks."""
    layer = _parse_layer(request.layer)
    first_seen = request.first_seen.upper() if request.first_seen else None
    with session.lock:
        warnings = session.store.gate_warnings(first_seen, layer)
    return [GateWarningResponse(**w.to_dict()) for w in warnings]


# ==================
# Drawing
# ==================

@router.get("/drawing", response_model=DrawingResponse)
def get_drawing(session: AnnotationSession = Depends(get_session)):
    with session.lock:
        return _drawing_response(session)


@router.post("/drawing/start", response_model=DrawingResponse)
def start_drawing(request: StartDrawingRequest, session: AnnotationSession = Depends(get_session)):
    try:
        mode = DrawingMode(request.mode)
    except ValueError:
        raise HTTPException(
            status_code=400,
            detail=f"Invalid mode. Must be one of: {[m.value for m in DrawingMode]}",
        )
    with session.lock:
        session.last_geometry = None
        session.drawing.start(mode)
        return _drawing_response(session)


@router.post("/drawing/vertex", response_model=DrawingResponse)
def add_vertex(request: VertexRequest, session: AnnotationSession = Depends(get_session)):
    with session.lock:
        session.drawing.add_vertex((request.lng, request.lat))
        return _drawing_response(session)


@router.post("/drawing/finish", response_model=DrawingResponse)
def finish_drawing(session: AnnotationSession = Depends(get_session)):
    with session.lock:
        session.drawing.finish()
        return _drawing_response(session)


@router.post("/drawing/cancel", response_model=DrawingResponse)
def cancel_drawing(session: AnnotationSession = Depends(get_session)):
    with session.lock:
        session.drawing.cancel()
        session.last_geometry = None
        return _drawing_response(session)


# ==================
# Import / Export
# ==================

def _import_content(session: AnnotationSession, content: bytes):
    collection = parse_collection(content)
    with session.lock:
        session.store.import_data(collection)
    return collection


@router.post("/import")
async def import_geojson(request: Request, session: AnnotationSession = Depends(get_session)):
    """Replace the collection with an uploaded GeoJSON document (raw body)."""
    content = await request.body()
    loop = asyncio.get_event_loop()
    try:
        collection = await loop.run_in_executor(None, _import_content, session, content)
    except GatewayError as e:
        logger.warning(f"Import rejected: {e}")
        raise HTTPException(status_code=400, detail=str(e))
    return {"status": "imported", "features": len(collection)}


@router.post("/reset")
def reset_to_seed(session: AnnotationSession = Depends(get_session)):
    """Discard the working set and reload the seed collection."""
    if settings.seed_path is None:
        raise HTTPException(status_code=503, detail="No seed data configured")
    try:
        with session.lock:
            state = session.reset_to_seed(settings.seed_path)
    except GatewayError as e:
        logger.error(f"Reset failed: {e}")
        raise HTTPException(status_code=503, detail=str(e))
    return {"status": "reset", "features": len(state.data)}


@router.get("/export")
def export_geojson(session: AnnotationSession = Depends(get_session)):
    """Download the current collection as a pretty-printed GeoJSON file."""
    with session.lock:
        body = export_collection(session.state.data)
    return Response(
        content=body,
        media_type=MEDIA_TYPE,
        headers={"Content-Disposition": f'attachment; filename="{settings.export_filename}"'},
    )
