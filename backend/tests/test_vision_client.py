"""Tests for the recognition service client."""

import base64
import json

import httpx
import pytest

from cheflens.config import Settings
from cheflens.exceptions import ConfigurationMissing, ProviderError, TransportError
from cheflens.models.vision import Feature
from cheflens.services.vision_client import VisionClient


def make_client(settings, handler) -> VisionClient:
    return VisionClient(settings, http_client=httpx.Client(transport=httpx.MockTransport(handler)))


class TestVisionClientRequest:
    """Test the request payload."""

    def test_payload_and_key(self, settings):
        """Test the image is base64 encoded and the key sent as a query param."""
        seen = {}

        def handler(request: httpx.Request) -> httpx.Response:
            seen["key"] = request.url.params["key"]
            seen["body"] = json.loads(request.content)
            return httpx.Response(200, json={"responses": [{}]})

        client = make_client(settings, handler)
        client.annotate(b"jpeg-bytes", Feature.WEB_DETECTION, max_results=20)

        request = seen["body"]["requests"][0]
        assert seen["key"] == "test-key"
        assert base64.b64decode(request["image"]["content"]) == b"jpeg-bytes"
        assert request["features"] == [{"type": "WEB_DETECTION", "maxResults": 20}]

    def test_missing_api_key(self):
        """Test a client cannot be built without a key."""
        with pytest.raises(ConfigurationMissing):
            VisionClient(Settings(vision_api_key=""))


class TestVisionClientResponse:
    """Test response parsing and error mapping."""

    def test_parses_typed_response(self, settings):
        """Test camelCase provider keys map onto the typed models."""
        body = {
            "responses": [{
                "labelAnnotations": [{"description": "Tomato", "score": 0.93}],
                "localizedObjectAnnotations": [{
                    "name": "Tomato",
                    "score": 0.8,
                    "boundingPoly": {"normalizedVertices": [{"x": 0.1}, {"x": 0.5, "y": 0.6}]},
                }],
                "webDetection": {"bestGuessLabels": [{"label": "tomato"}]},
            }]
        }
        client = make_client(settings, lambda request: httpx.Response(200, json=body))

        result = client.annotate(b"x", Feature.LABEL_DETECTION)

        assert result.label_annotations[0].description == "Tomato"
        points = result.localized_object_annotations[0].bounding_poly.points()
        assert (points[0].x, points[0].y) == (0.1, 0.0)
        assert result.web_detection.best_guess_labels[0].label == "tomato"
        assert result.text_annotations == []

    @pytest.mark.parametrize("status", [400, 403, 429, 503])
    def test_http_error(self, settings, status):
        """Test non-200 answers become ProviderError with the status."""
        body = {"error": {"code": status, "message": "boom"}}
        client = make_client(settings, lambda request: httpx.Response(status, json=body))

        with pytest.raises(ProviderError) as exc_info:
            client.annotate(b"x", Feature.TEXT_DETECTION)

        assert exc_info.value.status_code == status
        assert "boom" in exc_info.value.message

    def test_user_messages_by_status(self):
        """Test user messages distinguish auth, quota and server errors."""
        assert "key" in ProviderError("x", status_code=403).user_message
        assert "quota" in ProviderError("x", status_code=429).user_message
        assert "retry" in ProviderError("x", status_code=500).user_message

    def test_transport_failure(self, settings):
        """Test connection failures become TransportError."""
        def handler(request):
            raise httpx.ConnectError("unreachable", request=request)

        client = make_client(settings, handler)

        with pytest.raises(TransportError):
            client.annotate(b"x", Feature.LABEL_DETECTION)

    def test_malformed_body(self, settings):
        """Test a missing required key is rejected at the boundary."""
        body = {"responses": [{"labelAnnotations": [{"score": 0.9}]}]}
        client = make_client(settings, lambda request: httpx.Response(200, json=body))

        with pytest.raises(ProviderError, match="Malformed"):
            client.annotate(b"x", Feature.LABEL_DETECTION)

    def test_non_json_body(self, settings):
        """Test an unparsable body is a provider error."""
        client = make_client(settings, lambda request: httpx.Response(200, text="<html>"))

        with pytest.raises(ProviderError):
            client.annotate(b"x", Feature.LABEL_DETECTION)

    def test_error_payload_in_response(self, settings):
        """Test a per-image error status is raised."""
        body = {"responses": [{"error": {"code": 3, "message": "Bad image data"}}]}
        client = make_client(settings, lambda request: httpx.Response(200, json=body))

        with pytest.raises(ProviderError, match="Bad image data"):
            client.annotate(b"x", Feature.OBJECT_LOCALIZATION)

    def test_empty_responses(self, settings):
        """Test an empty batch is a provider error."""
        client = make_client(settings, lambda request: httpx.Response(200, json={"responses": []}))

        with pytest.raises(ProviderError):
            client.annotate(b"x", Feature.LABEL_DETECTION)
