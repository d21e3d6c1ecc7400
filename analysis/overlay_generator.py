#!/usr/bin/env python3
"""
Overlay Generator

Pure mapping from a composition result to renderer-agnostic overlay
descriptors. Geometry is normalized to the frame; crosshair size and stroke
widths are in screen points.

"""

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Any, ClassVar, Dict, List, Tuple

from .composition_types import (
    CompositionContext,
    CompositionResult,
    CompositionStatus,
    CompositionType
)

logger = logging.getLogger(__name__)

Color = Tuple[int, int, int]
Point = Tuple[float, float]

WHITE: Color = (255, 255, 255)
GREEN: Color = (56, 176, 0)
YELLOW: Color = (255, 204, 0)
ORANGE: Color = (255, 149, 0)
RED: Color = (255, 59, 48)
CYAN: Color = (50, 173, 230)

STATUS_COLORS = {
    CompositionStatus.PERFECT: GREEN,
    CompositionStatus.GOOD: WHITE,
    CompositionStatus.NEEDS_ADJUSTMENT: WHITE
}

SAFETY_ZONE_INSET = 0.05
CRITICAL_MARGIN = 0.01


class OverlayType(Enum):
    GRID = "grid"
    CROSSHAIR = "crosshair"
    SYMMETRY_LINE = "symmetry_line"
    SAFETY_ZONE = "safety_zone"


@dataclass(frozen=True)
class GridOverlay:
    lines: Tuple[Tuple[Point, Point], ...]
    color: Color = WHITE
    opacity: float = 0.6
    stroke_width: float = 1.0

    overlay_type: ClassVar[OverlayType] = OverlayType.GRID

    def to_dict(self) -> Dict[str, Any]:
        return {
            'type': self.overlay_type.value,
            'lines': [[list(start), list(end)] for start, end in self.lines],
            'color': list(self.color),
            'opacity': self.opacity,
            'strokeWidth': self.stroke_width
        }

    def to_pixels(self, width: int, height: int) -> List[Tuple[Tuple[int, int], Tuple[int, int]]]:
        return [
            ((round(x1 * width), round(y1 * height)), (round(x2 * width), round(y2 * height)))
            for (x1, y1), (x2, y2) in self.lines
        ]


@dataclass(frozen=True)
class CrosshairOverlay:
    center: Point
    size: float = 24.0
    color: Color = WHITE
    opacity: float = 0.8
    stroke_width: float = 1.5

    overlay_type: ClassVar[OverlayType] = OverlayType.CROSSHAIR

    def to_dict(self) -> Dict[str, Any]:
        return {
            'type': self.overlay_type.value,
            'center': list(self.center),
            'size': self.size,
            'color': list(self.color),
            'opacity': self.opacity,
            'strokeWidth': self.stroke_width
        }

    def to_pixels(self, width: int, height: int) -> Tuple[int, int]:
        return round(self.center[0] * width), round(self.center[1] * height)


@dataclass(frozen=True)
class SymmetryLineOverlay:
    x: float = 0.5
    color: Color = CYAN
    opacity: float = 0.4
    stroke_width: float = 1.0

    overlay_type: ClassVar[OverlayType] = OverlayType.SYMMETRY_LINE

    def to_dict(self) -> Dict[str, Any]:
        return {
            'type': self.overlay_type.value,
            'x': self.x,
            'color': list(self.color),
            'opacity': self.opacity,
            'strokeWidth': self.stroke_width
        }

    def to_pixels(self, width: int, height: int) -> Tuple[Tuple[int, int], Tuple[int, int]]:
        px = round(self.x * width)
        return (px, 0), (px, height)


@dataclass(frozen=True)
class SafetyZoneOverlay:
    rect: Tuple[float, float, float, float]
    severity: str = 'warning'
    color: Color = YELLOW
    opacity: float = 0.8
    stroke_width: float = 2.0

    overlay_type: ClassVar[OverlayType] = OverlayType.SAFETY_ZONE

    def to_dict(self) -> Dict[str, Any]:
        return {
            'type': self.overlay_type.value,
            'rect': list(self.rect),
            'severity': self.severity,
            'color': list(self.color),
            'opacity': self.opacity,
            'strokeWidth': self.stroke_width
        }

    def to_pixels(self, width: int, height: int) -> Tuple[int, int, int, int]:
        x, y, w, h = self.rect
        return round(x * width), round(y * height), round(w * width), round(h * height)


def create_grid_overlay(color: Color = WHITE, opacity: float = 0.6) -> GridOverlay:
    """Rule of thirds grid: two vertical and two horizontal lines."""

    third, two_thirds = 1.0 / 3.0, 2.0 / 3.0

    return GridOverlay(
        lines=(
            ((third, 0.0), (third, 1.0)),
            ((two_thirds, 0.0), (two_thirds, 1.0)),
            ((0.0, third), (1.0, third)),
            ((0.0, two_thirds), (1.0, two_thirds))
        ),
        color=color,
        opacity=opacity
    )


def create_center_crosshair(color: Color = WHITE) -> CrosshairOverlay:
    return CrosshairOverlay(center=(0.5, 0.5), color=color)


def create_symmetry_line(color: Color = CYAN) -> SymmetryLineOverlay:
    return SymmetryLineOverlay(x=0.5, color=color)


def create_guide_overlay(composition_type: CompositionType, color: Color = WHITE):
    """Static guide for a rule, shown with or without a subject."""

    if composition_type == CompositionType.RULE_OF_THIRDS:
        return create_grid_overlay(color)

    if composition_type == CompositionType.CENTER_FRAMING:
        return create_center_crosshair(color)

    return create_symmetry_line(CYAN if color == WHITE else color)


class OverlayGenerator:
    """
    Maps composition results onto overlay descriptors.

    Deterministic and stateless: identical inputs always produce identical
    overlay lists.
    """

    def generate(self, result: CompositionResult, context: CompositionContext) -> List[Any]:
        """
        Generate overlays for a result.

        Args:
            result: Composition result for the frame
            context: Composition context (normally result.context)

        Returns:
            List of overlay descriptors, rule guide first
        """
        guide_color = STATUS_COLORS[result.status]
        overlays = [create_guide_overlay(result.composition_type, guide_color)]

        edges = context.edge_proximity
        if edges.too_close:
            overlays.append(self._create_safety_zone(edges.margin))

        logger.debug(f"Generated {len(overlays)} overlays for {result.composition_type.value}")
        return overlays

    @staticmethod
    def _create_safety_zone(margin: float) -> SafetyZoneOverlay:
        critical = margin < CRITICAL_MARGIN

        return SafetyZoneOverlay(
            rect=(SAFETY_ZONE_INSET, SAFETY_ZONE_INSET,
                  1.0 - 2 * SAFETY_ZONE_INSET, 1.0 - 2 * SAFETY_ZONE_INSET),
            severity='critical' if critical else 'warning',
            color=RED if critical else ORANGE
        )


def overlays_to_dicts(overlays: List[Any]) -> List[Dict[str, Any]]:
    return [overlay.to_dict() for overlay in overlays]
