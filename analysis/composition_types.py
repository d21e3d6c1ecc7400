#!/usr/bin/env python3
"""
Composition Data Model

Value types shared by the detection, context analysis, rule evaluation and
overlay stages of the live composition pipeline. Everything here is
immutable and cheap to copy between threads.

"""

import json
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Optional, Tuple


class CompositionType(Enum):
    """Composition rules known to the engine, in tie-break priority order."""
    RULE_OF_THIRDS = "rule_of_thirds"
    CENTER_FRAMING = "center_framing"
    SYMMETRY = "symmetry"

    @property
    def display_name(self) -> str:
        return self.value.replace('_', ' ').title()


class CompositionStatus(Enum):
    """Quality status of an evaluated frame."""
    PERFECT = "Perfect"
    GOOD = "Good"
    NEEDS_ADJUSTMENT = "Needs Adjustment"


class SubjectKind(Enum):
    FACE = "face"
    HUMAN = "human"
    NONE = "none"


class SubjectSize(Enum):
    SMALL = "small"
    MEDIUM = "medium"
    LARGE = "large"


@dataclass(frozen=True)
class Frame:
    """Camera frame dimensions in pixels."""
    width: int
    height: int

    @property
    def is_valid(self) -> bool:
        return self.width > 0 and self.height > 0


@dataclass(frozen=True)
class BoundingBox:
    """
    Normalized rectangle in [0, 1] x [0, 1].

    Origin is the top-left corner of the frame and y grows downward.
    """
    x: float
    y: float
    width: float
    height: float

    @classmethod
    def empty(cls) -> 'BoundingBox':
        return cls(0.0, 0.0, 0.0, 0.0)

    @classmethod
    def from_pixels(cls, box: Tuple[int, int, int, int], frame: Frame) -> 'BoundingBox':
        """Convert an (x, y, w, h) pixel box into a normalized box clamped to the frame."""

        px, py, pw, ph = box
        x1 = min(max(px / frame.width, 0.0), 1.0)
        y1 = min(max(py / frame.height, 0.0), 1.0)
        x2 = min(max((px + pw) / frame.width, 0.0), 1.0)
        y2 = min(max((py + ph) / frame.height, 0.0), 1.0)

        return cls(x1, y1, max(0.0, x2 - x1), max(0.0, y2 - y1))

    @property
    def is_empty(self) -> bool:
        return self.width <= 0.0 or self.height <= 0.0

    @property
    def max_x(self) -> float:
        return self.x + self.width

    @property
    def max_y(self) -> float:
        return self.y + self.height

    @property
    def center(self) -> Tuple[float, float]:
        return (self.x + self.width / 2.0, self.y + self.height / 2.0)

    @property
    def area(self) -> float:
        return self.width * self.height


@dataclass(frozen=True)
class SubjectObservation:
    """The primary subject found in one frame, if any."""
    bounding_box: BoundingBox
    kind: SubjectKind
    confidence: float = 0.0

    @classmethod
    def none(cls) -> 'SubjectObservation':
        return cls(BoundingBox.empty(), SubjectKind.NONE, 0.0)

    @property
    def has_subject(self) -> bool:
        return self.kind is not SubjectKind.NONE and not self.bounding_box.is_empty


@dataclass(frozen=True)
class EdgeProximity:
    too_close: bool
    dangerous_edges: frozenset
    margin: float


@dataclass(frozen=True)
class HeadroomAnalysis:
    ratio: float
    excessive: bool
    cutoff: bool
    optimal_for_portrait: bool


@dataclass(frozen=True)
class CompositionContext:
    """
    Rule-agnostic signals derived from a subject observation.

    Offsets are signed fractions of the frame measured from its geometric
    center; positive x is right, positive y is down.
    """
    subject_size: SubjectSize
    offset_x: float
    offset_y: float
    edge_proximity: EdgeProximity
    headroom: HeadroomAnalysis
    multiple_subjects: bool = False
    reduced_confidence: bool = False

    @classmethod
    def empty(cls) -> 'CompositionContext':
        """Neutral context used when there is no subject to analyze."""

        return cls(
            subject_size=SubjectSize.SMALL,
            offset_x=0.0,
            offset_y=0.0,
            edge_proximity=EdgeProximity(too_close=False, dangerous_edges=frozenset(), margin=0.5),
            headroom=HeadroomAnalysis(ratio=0.0, excessive=False, cutoff=False, optimal_for_portrait=False),
        )

    def with_reduced_confidence(self) -> 'CompositionContext':
        return CompositionContext(
            subject_size=self.subject_size,
            offset_x=self.offset_x,
            offset_y=self.offset_y,
            edge_proximity=self.edge_proximity,
            headroom=self.headroom,
            multiple_subjects=self.multiple_subjects,
            reduced_confidence=True,
        )


@dataclass(frozen=True)
class CompositionFeedback:
    """
    Compact feedback for the camera HUD.

    Level runs from 1 (perfect) to 6 (critical issue); icon is a
    renderer-agnostic glyph name.
    """
    icon: str
    level: int

    def to_dict(self) -> Dict[str, Any]:
        return {'icon': self.icon, 'level': self.level}


@dataclass(frozen=True)
class CompositionResult:
    """
    Outcome of evaluating one frame against one composition rule.

    Only the most recent result is ever kept by the manager; results are
    never queued.
    """
    composition_type: CompositionType
    score: float
    status: CompositionStatus
    suggestion: str
    context: CompositionContext
    feedback: CompositionFeedback = field(default_factory=lambda: CompositionFeedback('none', 4))

    def to_dict(self, include_details: bool = False) -> Dict[str, Any]:
        """ Convert results to the JSON-compatible export format. """

        data = {
            'composition': self.composition_type.value,
            'score': round(self.score, 2),
            'status': self.status.value,
            'suggestion': self.suggestion,
            'context': {
                'subjectSize': self.context.subject_size.value,
                'subjectOffsetX': round(self.context.offset_x, 2),
                'subjectOffsetY': round(self.context.offset_y, 2),
                'multipleSubjects': self.context.multiple_subjects
            }
        }

        if include_details:
            edge = self.context.edge_proximity
            headroom = self.context.headroom
            data['feedback'] = self.feedback.to_dict()
            data['context']['edgeProximity'] = {
                'tooClose': edge.too_close,
                'dangerousEdges': sorted(edge.dangerous_edges),
                'margin': round(edge.margin, 3)
            }
            data['context']['headroom'] = {
                'ratio': round(headroom.ratio, 3),
                'excessive': headroom.excessive,
                'cutoff': headroom.cutoff,
                'optimalForPortrait': headroom.optimal_for_portrait
            }
            data['context']['reducedConfidence'] = self.context.reduced_confidence

        return data

    def to_json(self, include_details: bool = False, indent: Optional[int] = None) -> str:
        return json.dumps(self.to_dict(include_details), indent=indent)
