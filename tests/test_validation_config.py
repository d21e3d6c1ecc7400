"""
Tests for configuration loading and validation helpers.
"""

import json
import sys
import tempfile
from pathlib import Path

import numpy as np
import pytest

# Add project root to path
sys.path.append(str(Path(__file__).parent.parent))

from analysis.composition_manager import CompositionManager
from analysis.composition_types import (
    BoundingBox,
    CompositionType,
    Frame,
    SubjectKind,
    SubjectObservation,
    SubjectSize
)
from analysis.context_analyzer import ContextAnalyzer
from analysis.live_pipeline import CompositionPipeline
from analysis.rule_evaluators import RuleOfThirdsEvaluator, create_rule_evaluators
from utils.config import DEFAULT_CONFIG, get_default_config, load_config, merge_config
from utils.validation import (
    InvalidFrameError,
    ValidationError,
    validate_bounding_box,
    validate_composition_config,
    validate_frame,
    validate_frame_dimensions,
    validate_image_format,
    validate_pixel_data
)

SAMPLE_CONFIG = Path(__file__).parent.parent / "configs" / "composition_config.json"


class TestConfig:
    """Tests for defaults, merging and file loading."""

    @pytest.fixture
    def config_dir(self):
        with tempfile.TemporaryDirectory() as temp_dir:
            yield Path(temp_dir)

    def write_config(self, config_dir, data):
        path = config_dir / "config.json"
        with open(path, 'w') as f:
            json.dump(data, f)
        return path

    def test_defaults_are_valid(self):
        is_valid, errors = validate_composition_config(get_default_config())
        assert is_valid, errors

    def test_defaults_are_private_copies(self):
        config = get_default_config('rules')
        config['rule_of_thirds']['line_weight'] = 0.1

        assert DEFAULT_CONFIG['rules']['rule_of_thirds']['line_weight'] == 0.7

    def test_merge_is_deep(self):
        merged = merge_config(DEFAULT_CONFIG, {'rules': {'symmetry': {'good_threshold': 0.5}}})

        assert merged['rules']['symmetry']['good_threshold'] == 0.5
        assert merged['rules']['symmetry']['sample_size'] == 64
        assert DEFAULT_CONFIG['rules']['symmetry']['good_threshold'] == 0.6

    def test_sample_config_loads(self):
        config = load_config(SAMPLE_CONFIG)

        assert config['default_composition_type'] == 'rule_of_thirds'
        assert config['context']['excessive_headroom'] == 0.40

    def test_load_without_path_returns_defaults(self):
        assert load_config() == get_default_config()

    def test_load_overrides(self, config_dir):
        path = self.write_config(config_dir, {'default_composition_type': 'symmetry', 'enabled': False})
        config = load_config(path)

        assert config['default_composition_type'] == 'symmetry'
        assert config['enabled'] is False

    def test_unknown_rule_rejected(self, config_dir):
        path = self.write_config(config_dir, {'rules': {'golden_ratio': {'perfect_threshold': 0.9}}})

        with pytest.raises(ValidationError) as exc_info:
            load_config(path)

        assert any('golden_ratio' in error for error in exc_info.value.errors)

    def test_bad_threshold_rejected(self, config_dir):
        path = self.write_config(config_dir, {'rules': {'rule_of_thirds': {'perfect_threshold': 1.5}}})

        with pytest.raises(ValidationError):
            load_config(path)

    def test_inverted_thresholds_rejected(self):
        config = merge_config(DEFAULT_CONFIG, {'rules': {'symmetry': {'good_threshold': 0.9}}})
        is_valid, errors = validate_composition_config(config)

        assert not is_valid
        assert any('good_threshold' in error for error in errors)

    def test_bad_pipeline_values_rejected(self):
        config = merge_config(DEFAULT_CONFIG, {'pipeline': {'every_n_frames': 0, 'max_workers': 64}})
        is_valid, errors = validate_composition_config(config)

        assert not is_valid
        assert len(errors) == 2

    def test_malformed_json_rejected(self, config_dir):
        path = config_dir / "broken.json"
        path.write_text("{not json")

        with pytest.raises(ValidationError):
            load_config(path)

    def test_missing_file_rejected(self, config_dir):
        with pytest.raises(ValidationError):
            load_config(config_dir / "missing.json")


class TestValidation:
    """Tests for frame, box and pixel validation."""

    def test_frame_dimensions(self):
        assert validate_frame_dimensions(640, 480) == (True, [])

        is_valid, errors = validate_frame_dimensions(0, -5)
        assert not is_valid
        assert len(errors) == 2

    def test_invalid_frame_raises(self):
        validate_frame(Frame(1, 1))

        with pytest.raises(InvalidFrameError):
            validate_frame(Frame(0, 480))

    def test_bounding_box(self):
        assert validate_bounding_box((0.1, 0.1, 0.5, 0.5))[0]
        assert not validate_bounding_box((0.6, 0.1, 0.5, 0.5))[0]
        assert not validate_bounding_box((0.1, 0.1, 0.5))[0]

    def test_pixel_data(self):
        assert validate_pixel_data(np.zeros((8, 8, 3), dtype=np.uint8))
        assert validate_pixel_data(np.zeros((8, 8), dtype=np.uint8))
        assert not validate_pixel_data(None)
        assert not validate_pixel_data(np.zeros((8, 8, 2), dtype=np.uint8))
        assert not validate_pixel_data(np.zeros((0, 8), dtype=np.uint8))

    def test_image_format(self):
        assert validate_image_format("frame.JPG")
        assert validate_image_format("frame.png")
        assert not validate_image_format("frame.gif")
        assert not validate_image_format("")


class TestPartialConfig:
    """Components fill in whatever a partial config leaves out."""

    FRAME = Frame(1000, 1000)
    SUBJECT = SubjectObservation(BoundingBox(0.45, 0.45, 0.1, 0.1), SubjectKind.FACE, 0.9)

    def test_context_analyzer(self):
        analyzer = ContextAnalyzer({'edge_margin': 0.05})
        context = analyzer.analyze(self.SUBJECT, self.FRAME)

        assert analyzer.config['edge_margin'] == 0.05
        assert context.subject_size == SubjectSize.SMALL

    def test_single_evaluator(self):
        evaluator = RuleOfThirdsEvaluator({'tolerances': {'small': 0.2}})

        assert evaluator.tolerance_for(SubjectSize.SMALL) == 0.2
        assert evaluator.tolerance_for(SubjectSize.LARGE) == 0.18
        assert 0.0 <= evaluator.evaluate(self.SUBJECT, self.FRAME).score <= 1.0

    def test_evaluator_factory(self):
        evaluators = create_rule_evaluators({'rules': {'symmetry': {'good_threshold': 0.5}}})

        assert evaluators[CompositionType.SYMMETRY].config['good_threshold'] == 0.5
        assert evaluators[CompositionType.CENTER_FRAMING].config['tolerance'] == 0.12

    def test_manager(self):
        manager = CompositionManager({'rules': {'symmetry': {'good_threshold': 0.5}}})
        manager.switch_to_composition_type(CompositionType.CENTER_FRAMING)

        result = manager.evaluate(self.SUBJECT, self.FRAME)

        assert result is not None
        assert result.score == pytest.approx(1.0)
        assert manager.is_enabled

    def test_manager_with_context_only(self):
        manager = CompositionManager({'context': {'edge_margin': 0.05}})

        assert manager.evaluate(self.SUBJECT, self.FRAME) is not None

    def test_pipeline(self):
        pipeline = CompositionPipeline(detector=None, config={'every_n_frames': 1})
        try:
            assert pipeline.throttle.every_n_frames == 1
            assert pipeline.latency_budget_ms == 50.0
        finally:
            pipeline.close()
