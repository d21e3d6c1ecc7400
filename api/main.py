#!/usr/bin/env python3
"""
FastAPI Web Service for the Live Composition Assistant

This module exposes the composition engine over HTTP: rule selection and
enable/disable settings, frame evaluation from a known subject box or an
uploaded image, best-rule suggestions and static guide overlays.
"""

import sys
import time
import logging
from typing import Any, Dict, List, Optional
from pathlib import Path

import uvicorn
from fastapi import FastAPI, File, HTTPException, Query, Request, UploadFile
from fastapi.middleware.cors import CORSMiddleware
from pydantic import BaseModel, Field

# Add project root to path
sys.path.append(str(Path(__file__).parent.parent))

from analysis import (
    BoundingBox,
    CompositionManager,
    CompositionType,
    Frame,
    OverlayGenerator,
    SubjectKind,
    SubjectObservation,
    overlays_to_dicts
)
from detection import create_subject_detector
from preprocessing import create_preprocessing_pipeline
from utils import (
    get_default_config,
    merge_config,
    validate_bounding_box,
    validate_file_size,
    validate_frame_dimensions,
    validate_image_format
)

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)

# API Configuration
API_VERSION = "1.0.0"
API_TITLE = "Live Composition Assistant API"
API_DESCRIPTION = """
Real-time photography composition feedback.

## Composition Rules

1. **Rule of Thirds**: Subject on a thirds intersection or line
2. **Center Framing**: Subject on the geometric frame center
3. **Symmetry**: Left/right mirror balance of the scene
"""


# Pydantic Models
class SubjectBox(BaseModel):
    """Normalized subject bounding box, origin top-left, y down"""
    x: float = Field(..., ge=0.0, le=1.0, description="Left edge (0-1)")
    y: float = Field(..., ge=0.0, le=1.0, description="Top edge (0-1)")
    width: float = Field(..., gt=0.0, le=1.0, description="Box width (0-1]")
    height: float = Field(..., gt=0.0, le=1.0, description="Box height (0-1]")
    kind: SubjectKind = Field(default=SubjectKind.FACE, description="Subject kind")
    confidence: float = Field(default=1.0, ge=0.0, le=1.0, description="Detector confidence")


class EvaluateRequest(BaseModel):
    """Request model for frame evaluation"""
    width: int = Field(..., description="Frame width in pixels")
    height: int = Field(..., description="Frame height in pixels")
    subject: Optional[SubjectBox] = Field(default=None, description="Primary subject, omitted when none")
    include_details: bool = Field(default=False, description="Include feedback, edges and headroom")


class EvaluationResponse(BaseModel):
    """Response model for a composition evaluation"""
    result: Dict[str, Any] = Field(..., description="Composition result")
    overlays: List[Dict[str, Any]] = Field(..., description="Overlay descriptors")
    processing_time: float = Field(..., description="Processing time in seconds")
    subject: Optional[Dict[str, Any]] = Field(default=None, description="Detected subject")


class SuggestResponse(BaseModel):
    """Best composition rule for a frame"""
    best_composition: Optional[str] = Field(..., description="Highest scoring rule")
    scores: Dict[str, float] = Field(..., description="Score per rule")


class CompositionTypeRequest(BaseModel):
    composition_type: CompositionType = Field(..., description="Rule to activate")


class EnabledRequest(BaseModel):
    enabled: bool = Field(..., description="Whether analysis runs")


class SettingsResponse(BaseModel):
    """Current manager settings"""
    composition_type: str = Field(..., description="Active composition rule")
    enabled: bool = Field(..., description="Whether analysis runs")
    available_types: List[str] = Field(..., description="All composition rules")


class OverlaysResponse(BaseModel):
    overlays: List[Dict[str, Any]] = Field(..., description="Overlay descriptors")


class ResultResponse(BaseModel):
    result: Optional[Dict[str, Any]] = Field(default=None, description="Last published result")


class HealthResponse(BaseModel):
    """Health check response"""
    status: str = Field(..., description="Service status")
    version: str = Field(..., description="API version")
    uptime: float = Field(..., description="Service uptime in seconds")
    detector_loaded: bool = Field(..., description="Subject detector status")


def _check_frame(width: int, height: int) -> Frame:
    is_valid, errors = validate_frame_dimensions(width, height)
    if not is_valid:
        raise HTTPException(status_code=422, detail=errors)
    return Frame(width=width, height=height)


def _observation_from_request(subject: Optional[SubjectBox]) -> SubjectObservation:
    if subject is None or subject.kind == SubjectKind.NONE:
        return SubjectObservation.none()

    values = (subject.x, subject.y, subject.width, subject.height)
    is_valid, errors = validate_bounding_box(values)
    if not is_valid:
        raise HTTPException(status_code=422, detail=errors)

    return SubjectObservation(
        bounding_box=BoundingBox(*values),
        kind=subject.kind,
        confidence=subject.confidence
    )


def _settings(manager: CompositionManager) -> SettingsResponse:
    state = manager.state
    return SettingsResponse(
        composition_type=state.composition_type.value,
        enabled=state.is_enabled,
        available_types=[t.value for t in manager.available_composition_types]
    )


def create_app(config: Optional[Dict[str, Any]] = None, detector: Optional[Any] = None) -> FastAPI:
    """
    Build the API application around one composition manager.

    Args:
        config: Full configuration dictionary
        detector: Optional subject detector, created on first upload if omitted

    Returns:
        Configured FastAPI application
    """
    config = merge_config(get_default_config(), config or {})

    app = FastAPI(
        title=API_TITLE,
        description=API_DESCRIPTION,
        version=API_VERSION,
        docs_url="/docs",
        redoc_url="/redoc"
    )

    # CORS middleware
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.state.config = config
    app.state.manager = CompositionManager(config)
    app.state.overlay_generator = OverlayGenerator()
    app.state.preprocessor = create_preprocessing_pipeline(config)
    app.state.detector = detector
    app.state.start_time = time.time()

    def get_detector(request: Request) -> Any:
        if request.app.state.detector is None:
            request.app.state.detector = create_subject_detector(request.app.state.config)
        return request.app.state.detector

    def build_response(request: Request, observation: SubjectObservation, frame: Frame,
                       pixel_data=None, include_details: bool = False,
                       start_time: float = 0.0) -> EvaluationResponse:
        manager = request.app.state.manager

        result = manager.evaluate(observation, frame, pixel_data)
        if result is None:
            raise HTTPException(status_code=422, detail="Invalid frame")

        if result.suggestion:
            overlays = request.app.state.overlay_generator.generate(result, result.context)
        else:
            overlays = manager.get_basic_overlays(frame)

        return EvaluationResponse(
            result=result.to_dict(include_details=include_details),
            overlays=overlays_to_dicts(overlays),
            processing_time=time.time() - start_time
        )

    @app.get("/health", response_model=HealthResponse)
    async def health_check(request: Request):
        """Service health check endpoint"""
        return HealthResponse(
            status="healthy",
            version=API_VERSION,
            uptime=time.time() - request.app.state.start_time,
            detector_loaded=request.app.state.detector is not None
        )

    @app.get("/settings", response_model=SettingsResponse)
    async def get_settings(request: Request):
        return _settings(request.app.state.manager)

    @app.put("/settings/composition-type", response_model=SettingsResponse)
    async def set_composition_type(body: CompositionTypeRequest, request: Request):
        """Switch the active composition rule"""
        manager = request.app.state.manager
        manager.switch_to_composition_type(body.composition_type)
        return _settings(manager)

    @app.put("/settings/enabled", response_model=SettingsResponse)
    async def set_enabled(body: EnabledRequest, request: Request):
        manager = request.app.state.manager
        manager.set_enabled(body.enabled)
        return _settings(manager)

    @app.post("/evaluate", response_model=EvaluationResponse)
    def evaluate_frame(body: EvaluateRequest, request: Request):
        """
        Evaluate a frame with a known subject box

        The box comes from an on-device detector; no pixels are sent, so
        symmetry falls back to geometry with reduced confidence.
        """
        start_time = time.time()
        frame = _check_frame(body.width, body.height)
        observation = _observation_from_request(body.subject)

        response = build_response(request, observation, frame,
                                  include_details=body.include_details, start_time=start_time)

        logger.info(f"Evaluated {frame.width}x{frame.height} frame - score: {response.result['score']}")
        return response

    @app.post("/evaluate/image", response_model=EvaluationResponse)
    def evaluate_image(request: Request,
                       file: UploadFile = File(..., description="Image file to evaluate"),
                       include_details: bool = Query(default=False)):
        """
        Detect the subject in an uploaded image and evaluate it

        Pixel data is available here, so symmetry and the center framing
        bonus use the full image analysis.
        """
        start_time = time.time()

        if not validate_image_format(file.filename):
            raise HTTPException(status_code=400, detail="Unsupported image format")

        image_data = file.file.read()
        if not validate_file_size(len(image_data)):
            raise HTTPException(status_code=400, detail="Image is empty or too large")

        try:
            image = request.app.state.preprocessor.decode_image(image_data)
        except ValueError as e:
            raise HTTPException(status_code=400, detail=str(e))

        frame = _check_frame(image.shape[1], image.shape[0])
        observation = get_detector(request).detect(image)

        response = build_response(request, observation, frame, pixel_data=image,
                                  include_details=include_details, start_time=start_time)

        box = observation.bounding_box
        response.subject = {
            'kind': observation.kind.value,
            'confidence': round(observation.confidence, 3),
            'bounding_box': [round(box.x, 4), round(box.y, 4), round(box.width, 4), round(box.height, 4)]
        }

        logger.info(f"Evaluated upload {file.filename} ({observation.kind.value}) "
                    f"in {response.processing_time:.3f}s - score: {response.result['score']}")
        return response

    @app.post("/suggest", response_model=SuggestResponse)
    def suggest_composition(body: EvaluateRequest, request: Request):
        """Score every rule for a frame and name the best one"""
        frame = _check_frame(body.width, body.height)
        observation = _observation_from_request(body.subject)
        manager = request.app.state.manager

        scores = manager.get_all_composition_scores(observation, frame)
        best = manager.get_best_composition_suggestion(observation, frame)

        return SuggestResponse(
            best_composition=best.value if best else None,
            scores={t.value: round(score, 4) for t, score in scores.items()}
        )

    @app.get("/overlays/basic", response_model=OverlaysResponse)
    async def basic_overlays(request: Request,
                             width: int = Query(..., description="Frame width in pixels"),
                             height: int = Query(..., description="Frame height in pixels")):
        frame = _check_frame(width, height)
        overlays = request.app.state.manager.get_basic_overlays(frame)
        return OverlaysResponse(overlays=overlays_to_dicts(overlays))

    @app.get("/result", response_model=ResultResponse)
    async def last_result(request: Request):
        result = request.app.state.manager.last_result
        return ResultResponse(result=result.to_dict(include_details=True) if result else None)

    logger.info("Live Composition Assistant API initialized")
    return app


app = create_app()

if __name__ == "__main__":
    # Run with uvicorn for development
    uvicorn.run(
        "main:app",
        host="0.0.0.0",
        port=8000,
        reload=True,
        log_level="info"
    )
