#!/usr/bin/env python3
"""
Composition Context Analyzer

Derives the rule-agnostic signals every composition rule relies on: subject
size class, offset from the frame center, edge proximity and headroom.
The analysis is pure and recomputed for every evaluated frame.

"""

import logging
from typing import Any, Dict, Optional

from utils.config import get_default_config, merge_config

from .composition_types import (
    CompositionContext,
    EdgeProximity,
    Frame,
    HeadroomAnalysis,
    SubjectObservation,
    SubjectSize
)

logger = logging.getLogger(__name__)


class ContextAnalyzer:
    """
    Converts a subject observation into a CompositionContext.

    Size bands let the rule evaluators widen their tolerances for close-up
    subjects and tighten them for distant ones without duplicating the
    classification in every rule.

    """

    def __init__(self, config: Optional[Dict[str, Any]] = None):
        """
        Initialize the context analyzer.

        Args:
            config: 'context' section of the configuration
        """

        self.config = merge_config(self._get_default_config(), config or {})

    def _get_default_config(self) -> Dict[str, Any]:
        """Get default thresholds for context analysis"""

        return get_default_config('context')

    def analyze(self, observation: SubjectObservation, frame: Frame) -> CompositionContext:
        """
        Analyze subject placement within the frame.

        Args:
            observation: Primary subject observation for the frame
            frame: Frame dimensions

        Returns:
            CompositionContext for the observation
        """

        if not observation.has_subject:
            return CompositionContext.empty()

        box = observation.bounding_box
        center_x, center_y = box.center

        context = CompositionContext(
            subject_size=self.classify_size(box.area),
            offset_x=center_x - 0.5,
            offset_y=center_y - 0.5,
            edge_proximity=self._analyze_edge_proximity(observation),
            headroom=self._analyze_headroom(observation),
            multiple_subjects=False
        )

        logger.debug(
            f"Context for {observation.kind.value} on {frame.width}x{frame.height}: "
            f"size={context.subject_size.value}, offset=({context.offset_x:.3f}, {context.offset_y:.3f})"
        )

        return context

    def classify_size(self, area_fraction: float) -> SubjectSize:
        """Classify the subject by the fraction of the frame it covers."""

        if area_fraction < self.config['small_subject_max']:
            return SubjectSize.SMALL

        if area_fraction <= self.config['medium_subject_max']:
            return SubjectSize.MEDIUM

        return SubjectSize.LARGE

    def _analyze_edge_proximity(self, observation: SubjectObservation) -> EdgeProximity:
        box = observation.bounding_box
        edge_margin = self.config['edge_margin']

        margins = {
            'left': box.x,
            'right': 1.0 - box.max_x,
            'top': box.y,
            'bottom': 1.0 - box.max_y
        }

        dangerous_edges = frozenset(edge for edge, margin in margins.items() if margin < edge_margin)

        return EdgeProximity(
            too_close=bool(dangerous_edges),
            dangerous_edges=dangerous_edges,
            margin=max(0.0, min(margins.values()))
        )

    def _analyze_headroom(self, observation: SubjectObservation) -> HeadroomAnalysis:
        # Space above the subject; the origin is the top edge
        box = observation.bounding_box
        ratio = box.y
        bottom_margin = 1.0 - box.max_y

        return HeadroomAnalysis(
            ratio=ratio,
            excessive=ratio > self.config['excessive_headroom'],
            cutoff=bottom_margin < self.config['cutoff_margin'],
            optimal_for_portrait=(
                self.config['portrait_headroom_min'] <= ratio <= self.config['portrait_headroom_max']
            )
        )
