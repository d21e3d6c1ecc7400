"""
Tests for the HTTP control surface.
"""

import io
import sys
from pathlib import Path

import numpy as np
import pytest
from fastapi.testclient import TestClient
from PIL import Image

# Add project root to path
sys.path.append(str(Path(__file__).parent.parent))

from analysis.composition_types import BoundingBox, SubjectKind, SubjectObservation
from api.main import create_app
from detection import subject_detector


class FakeDetector:
    """Always finds a face on the upper-left third."""

    def __init__(self):
        self.calls = 0

    def detect(self, image):
        self.calls += 1
        third = 1.0 / 3.0
        return SubjectObservation(BoundingBox(third - 0.05, third - 0.05, 0.1, 0.1), SubjectKind.FACE, 0.95)


def png_bytes(width=160, height=120):
    image = Image.fromarray(np.full((height, width, 3), 90, dtype=np.uint8))
    buffer = io.BytesIO()
    image.save(buffer, format='PNG')
    return buffer.getvalue()


def evaluate_body(cx=0.5, cy=0.5, **extra):
    body = {
        'width': 1920,
        'height': 1080,
        'subject': {'x': cx - 0.05, 'y': cy - 0.05, 'width': 0.1, 'height': 0.1}
    }
    body.update(extra)
    return body


class TestAPI:
    """Tests for the FastAPI application."""

    @pytest.fixture
    def detector(self):
        return FakeDetector()

    @pytest.fixture
    def client(self, detector):
        return TestClient(create_app(detector=detector))

    def test_health(self, client):
        response = client.get("/health")

        assert response.status_code == 200
        assert response.json()['status'] == 'healthy'
        assert response.json()['detector_loaded'] is True

    def test_settings_round_trip(self, client):
        assert client.get("/settings").json()['composition_type'] == 'rule_of_thirds'

        response = client.put("/settings/composition-type", json={'composition_type': 'center_framing'})
        assert response.status_code == 200
        assert response.json()['composition_type'] == 'center_framing'

        response = client.put("/settings/enabled", json={'enabled': False})
        assert response.json()['enabled'] is False

        settings = client.get("/settings").json()
        assert settings == {
            'composition_type': 'center_framing',
            'enabled': False,
            'available_types': ['rule_of_thirds', 'center_framing', 'symmetry']
        }

    def test_unknown_composition_type_rejected(self, client):
        response = client.put("/settings/composition-type", json={'composition_type': 'golden_spiral'})
        assert response.status_code == 422

    def test_evaluate(self, client):
        response = client.post("/evaluate", json=evaluate_body(1.0 / 3.0, 1.0 / 3.0))

        assert response.status_code == 200
        data = response.json()
        assert data['result']['composition'] == 'rule_of_thirds'
        assert data['result']['status'] == 'Perfect'
        assert data['overlays'][0]['type'] == 'grid'

    def test_evaluate_center_framing_direction(self, client):
        client.put("/settings/composition-type", json={'composition_type': 'center_framing'})
        data = client.post("/evaluate", json=evaluate_body(0.6, 0.5)).json()

        assert 'right' in data['result']['suggestion']
        assert 'left' not in data['result']['suggestion']

    def test_evaluate_with_details(self, client):
        data = client.post("/evaluate", json=evaluate_body(include_details=True)).json()

        assert 'feedback' in data['result']
        assert 'edgeProximity' in data['result']['context']

    def test_evaluate_invalid_frame(self, client):
        response = client.post("/evaluate", json=evaluate_body(width=0))
        assert response.status_code == 422

    def test_evaluate_box_outside_frame(self, client):
        body = evaluate_body()
        body['subject'] = {'x': 0.8, 'y': 0.1, 'width': 0.5, 'height': 0.2}

        assert client.post("/evaluate", json=body).status_code == 422

    def test_evaluate_without_subject(self, client):
        data = client.post("/evaluate", json={'width': 640, 'height': 480}).json()

        assert data['result']['suggestion'] == ''
        assert len(data['overlays']) == 1

    def test_result_endpoint(self, client):
        assert client.get("/result").json()['result'] is None

        client.post("/evaluate", json=evaluate_body(1.0 / 3.0, 1.0 / 3.0))
        result = client.get("/result").json()['result']

        assert result['composition'] == 'rule_of_thirds'

        client.put("/settings/enabled", json={'enabled': False})
        assert client.get("/result").json()['result'] is None

    def test_suggest(self, client):
        data = client.post("/suggest", json=evaluate_body(0.5, 0.5)).json()

        assert data['best_composition'] == 'center_framing'
        assert set(data['scores']) == {'rule_of_thirds', 'center_framing', 'symmetry'}

    def test_basic_overlays(self, client):
        client.put("/settings/composition-type", json={'composition_type': 'symmetry'})
        data = client.get("/overlays/basic", params={'width': 640, 'height': 480}).json()

        assert [o['type'] for o in data['overlays']] == ['symmetry_line']

    def test_basic_overlays_invalid_frame(self, client):
        response = client.get("/overlays/basic", params={'width': 0, 'height': 480})
        assert response.status_code == 422

    def test_evaluate_image(self, client, detector):
        response = client.post(
            "/evaluate/image",
            files={'file': ('frame.png', png_bytes(), 'image/png')}
        )

        assert response.status_code == 200
        data = response.json()
        assert detector.calls == 1
        assert data['subject']['kind'] == 'face'
        assert data['result']['status'] == 'Perfect'

    def test_evaluate_image_rejects_format(self, client):
        response = client.post(
            "/evaluate/image",
            files={'file': ('frame.gif', b'GIF89a', 'image/gif')}
        )
        assert response.status_code == 400

    def test_evaluate_image_rejects_garbage(self, client):
        response = client.post(
            "/evaluate/image",
            files={'file': ('frame.png', b'not an image', 'image/png')}
        )
        assert response.status_code == 400

    def test_partial_config(self, detector):
        client = TestClient(create_app({'default_composition_type': 'symmetry'}, detector=detector))

        assert client.get("/settings").json()['composition_type'] == 'symmetry'
        assert client.post("/evaluate", json=evaluate_body(0.5, 0.5)).status_code == 200

    def test_evaluate_image_without_detection_models(self, monkeypatch):
        def unavailable(config=None):
            raise RuntimeError("model unavailable")

        monkeypatch.setattr(subject_detector, 'HaarFaceDetector', unavailable)
        monkeypatch.setattr(subject_detector, 'HogHumanDetector', unavailable)
        client = TestClient(create_app())

        response = client.post(
            "/evaluate/image",
            files={'file': ('frame.png', png_bytes(), 'image/png')}
        )

        assert response.status_code == 200
        assert response.json()['subject']['kind'] == 'none'
        assert response.json()['result']['suggestion'] == ''
