"""
Composition Analysis Module

This module contains the live composition engine: context analysis, the
rule evaluators, suggestion wording, the composition manager, overlay
generation and the threaded frame pipeline.
"""

from .composition_types import (
    BoundingBox,
    CompositionContext,
    CompositionFeedback,
    CompositionResult,
    CompositionStatus,
    CompositionType,
    EdgeProximity,
    Frame,
    HeadroomAnalysis,
    SubjectKind,
    SubjectObservation,
    SubjectSize
)
from .context_analyzer import ContextAnalyzer
from .rule_evaluators import (
    BaseRuleEvaluator,
    RuleOfThirdsEvaluator,
    CenterFramingEvaluator,
    SymmetryEvaluator,
    create_rule_evaluators
)
from .suggestion_engine import SuggestionEngine, FeedbackLevel
from .composition_manager import CompositionManager, ManagerState
from .overlay_generator import OverlayGenerator, overlays_to_dicts
from .live_pipeline import CompositionPipeline, FrameThrottle, PublishedFeedback

__all__ = [
    'BoundingBox',
    'CompositionContext',
    'CompositionFeedback',
    'CompositionResult',
    'CompositionStatus',
    'CompositionType',
    'EdgeProximity',
    'Frame',
    'HeadroomAnalysis',
    'SubjectKind',
    'SubjectObservation',
    'SubjectSize',
    'ContextAnalyzer',
    'BaseRuleEvaluator',
    'RuleOfThirdsEvaluator',
    'CenterFramingEvaluator',
    'SymmetryEvaluator',
    'create_rule_evaluators',
    'SuggestionEngine',
    'FeedbackLevel',
    'CompositionManager',
    'ManagerState',
    'OverlayGenerator',
    'overlays_to_dicts',
    'CompositionPipeline',
    'FrameThrottle',
    'PublishedFeedback'
]

__version__ = "1.0.0"
