"""
Tests for the composition manager: dispatch, settings, publishing and
stale-result handling.
"""

import sys
import threading
from pathlib import Path

import pytest

# Add project root to path
sys.path.append(str(Path(__file__).parent.parent))

from analysis.composition_manager import CompositionManager, ManagerState
from analysis.composition_types import (
    BoundingBox,
    CompositionStatus,
    CompositionType,
    Frame,
    SubjectKind,
    SubjectObservation
)
from analysis.overlay_generator import CrosshairOverlay, GridOverlay, SymmetryLineOverlay
from analysis.rule_evaluators import BaseRuleEvaluator

FRAME = Frame(width=1920, height=1080)


def subject_at(cx, cy, w=0.1, h=0.1):
    return SubjectObservation(BoundingBox(cx - w / 2, cy - h / 2, w, h), SubjectKind.FACE, 0.9)


class FailingEvaluator(BaseRuleEvaluator):
    composition_type = CompositionType.RULE_OF_THIRDS

    def evaluate(self, observation, frame, pixel_data=None):
        raise RuntimeError("boom")


class TestCompositionManager:
    """Tests for the composition manager."""

    @pytest.fixture
    def manager(self):
        return CompositionManager()

    def test_defaults(self, manager):
        assert manager.current_composition_type == CompositionType.RULE_OF_THIRDS
        assert manager.is_enabled
        assert manager.last_result is None

    def test_evaluate_publishes_result(self, manager):
        result = manager.evaluate(subject_at(1.0 / 3.0, 1.0 / 3.0), FRAME)

        assert result is not None
        assert result.composition_type == CompositionType.RULE_OF_THIRDS
        assert manager.last_result is result

    def test_invalid_frame_returns_none(self, manager):
        assert manager.evaluate(subject_at(0.5, 0.5), Frame(0, 1080)) is None
        assert manager.evaluate(subject_at(0.5, 0.5), Frame(1920, -1)) is None
        assert manager.last_result is None

    def test_no_subject_gives_neutral_result(self, manager):
        result = manager.evaluate(SubjectObservation.none(), FRAME)

        assert result.suggestion == ''
        assert result.status == CompositionStatus.NEEDS_ADJUSTMENT
        assert result.score == 0.0

    def test_switch_does_not_rescore_last_result(self, manager):
        first = manager.evaluate(subject_at(0.5, 0.5), FRAME)
        state = manager.switch_to_composition_type(CompositionType.CENTER_FRAMING)

        assert isinstance(state, ManagerState)
        assert state.composition_type == CompositionType.CENTER_FRAMING
        assert state.last_result is first
        assert first.composition_type == CompositionType.RULE_OF_THIRDS

        second = manager.evaluate(subject_at(0.5, 0.5), FRAME)
        assert second.composition_type == CompositionType.CENTER_FRAMING

    def test_disabling_clears_last_result(self, manager):
        manager.evaluate(subject_at(0.5, 0.5), FRAME)
        state = manager.set_enabled(False)

        assert not state.is_enabled
        assert state.last_result is None

    def test_disabled_result_is_not_published(self, manager):
        manager.set_enabled(False)
        result = manager.evaluate(subject_at(1.0 / 3.0, 1.0 / 3.0), FRAME)

        assert result.suggestion == ''
        assert manager.last_result is None

    def test_toggle_enabled(self, manager):
        assert not manager.toggle_enabled().is_enabled
        assert manager.toggle_enabled().is_enabled

    def test_best_suggestion_prefers_rule_of_thirds(self, manager):
        best = manager.get_best_composition_suggestion(subject_at(2.0 / 3.0, 1.0 / 3.0), FRAME)
        assert best == CompositionType.RULE_OF_THIRDS

    def test_best_suggestion_tie_breaks_by_priority(self, manager):
        # Center framing and the symmetry fallback both score 1.0 here
        scores = manager.get_all_composition_scores(subject_at(0.5, 0.5), FRAME)
        assert scores[CompositionType.CENTER_FRAMING] == pytest.approx(scores[CompositionType.SYMMETRY])

        best = manager.get_best_composition_suggestion(subject_at(0.5, 0.5), FRAME)
        assert best == CompositionType.CENTER_FRAMING

    def test_best_suggestion_without_subject(self, manager):
        best = manager.get_best_composition_suggestion(SubjectObservation.none(), FRAME)
        assert best == CompositionType.RULE_OF_THIRDS

    def test_scoring_does_not_publish(self, manager):
        manager.get_all_composition_scores(subject_at(0.5, 0.5), FRAME)
        assert manager.last_result is None

    def test_invalid_frame_has_no_scores(self, manager):
        assert manager.get_all_composition_scores(subject_at(0.5, 0.5), Frame(0, 0)) == {}
        assert manager.get_best_composition_suggestion(subject_at(0.5, 0.5), Frame(0, 0)) is None

    @pytest.mark.parametrize("composition_type,overlay_class", [
        (CompositionType.RULE_OF_THIRDS, GridOverlay),
        (CompositionType.CENTER_FRAMING, CrosshairOverlay),
        (CompositionType.SYMMETRY, SymmetryLineOverlay),
    ])
    def test_basic_overlays(self, manager, composition_type, overlay_class):
        manager.switch_to_composition_type(composition_type)
        overlays = manager.get_basic_overlays(FRAME)

        assert len(overlays) == 1
        assert isinstance(overlays[0], overlay_class)

    def test_basic_overlays_for_invalid_frame(self, manager):
        assert manager.get_basic_overlays(Frame(0, 100)) == []

    def test_evaluator_error_gives_reduced_confidence(self):
        manager = CompositionManager(evaluators={CompositionType.RULE_OF_THIRDS: FailingEvaluator()})
        result = manager.evaluate(subject_at(0.5, 0.5), FRAME)

        assert result is not None
        assert result.context.reduced_confidence
        assert result.suggestion == ''

    def test_subscribe_and_unsubscribe(self, manager):
        received = []
        unsubscribe = manager.subscribe(received.append)

        first = manager.evaluate(subject_at(0.5, 0.5), FRAME)
        unsubscribe()
        manager.evaluate(subject_at(0.4, 0.4), FRAME)

        assert received == [first]


class TestStaleResults:
    """Last-writer-wins by frame sequence number."""

    def test_older_frame_is_discarded(self):
        manager = CompositionManager()

        newer = manager.evaluate(subject_at(0.5, 0.5), FRAME, sequence=2)
        older = manager.evaluate(subject_at(1.0 / 3.0, 1.0 / 3.0), FRAME, sequence=1)

        assert older is None
        assert manager.last_result is newer

    def test_out_of_order_completion_publishes_newest(self):
        """Frame N finishes after frame N+1; the N+1 result must survive."""
        release_n = threading.Event()
        n_plus_one_done = threading.Event()

        class GatedEvaluator(BaseRuleEvaluator):
            composition_type = CompositionType.RULE_OF_THIRDS

            def __init__(self):
                super().__init__()
                self.inner = manager_default.rule_evaluators[CompositionType.RULE_OF_THIRDS]

            def evaluate(self, observation, frame, pixel_data=None):
                if observation.bounding_box.center[0] < 0.4:
                    release_n.wait(timeout=5)
                return self.inner.evaluate(observation, frame, pixel_data)

        manager_default = CompositionManager()
        manager = CompositionManager(evaluators={CompositionType.RULE_OF_THIRDS: GatedEvaluator()})
        outcomes = {}

        def run(name, observation, sequence):
            outcomes[name] = manager.evaluate(observation, FRAME, sequence=sequence)
            if name == 'n+1':
                n_plus_one_done.set()

        frame_n = threading.Thread(target=run, args=('n', subject_at(1.0 / 3.0, 1.0 / 3.0), 10))
        frame_n1 = threading.Thread(target=run, args=('n+1', subject_at(0.5, 0.5), 11))

        frame_n.start()
        frame_n1.start()
        assert n_plus_one_done.wait(timeout=5)
        release_n.set()
        frame_n.join(timeout=5)
        frame_n1.join(timeout=5)

        assert outcomes['n'] is None
        assert manager.last_result is outcomes['n+1']
        assert manager.last_result.context.offset_x == pytest.approx(0.0)

    def test_disabling_mid_evaluation_discards_result(self):
        """A result finishing after analysis was disabled is never published."""
        started = threading.Event()
        release = threading.Event()

        class BlockingEvaluator(BaseRuleEvaluator):
            composition_type = CompositionType.RULE_OF_THIRDS

            def evaluate(self, observation, frame, pixel_data=None):
                started.set()
                release.wait(timeout=5)
                return inner.evaluate(observation, frame, pixel_data)

        inner = CompositionManager().rule_evaluators[CompositionType.RULE_OF_THIRDS]
        manager = CompositionManager(evaluators={CompositionType.RULE_OF_THIRDS: BlockingEvaluator()})
        received = []
        manager.subscribe(received.append)
        outcome = {}

        def run():
            outcome['result'] = manager.evaluate(subject_at(1.0 / 3.0, 1.0 / 3.0), FRAME, sequence=1)

        worker = threading.Thread(target=run)
        worker.start()
        assert started.wait(timeout=5)

        manager.set_enabled(False)
        release.set()
        worker.join(timeout=5)

        assert not manager.is_enabled
        assert manager.last_result is None
        assert received == []
        assert outcome['result'].suggestion == ''
