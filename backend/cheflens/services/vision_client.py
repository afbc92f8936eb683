"""HTTP client for the image-recognition service (Cloud Vision ``images:annotate``)."""

import base64
import logging
from typing import Optional

import httpx
from pydantic import ValidationError

from ..config import Settings, get_settings
from ..exceptions import ConfigurationMissing, ProviderError, TransportError
from ..models.vision import AnnotateImageResponse, BatchAnnotateImagesResponse, Feature

logger = logging.getLogger(__name__)


class VisionClient:
    """
    Sends one feature request per call and returns the parsed first response.

    The underlying ``httpx.Client`` is created lazily and reused; pass one in to
    control transport (tests use ``httpx.MockTransport``).
    """

    def __init__(
        self,
        settings: Optional[Settings] = None,
        http_client: Optional[httpx.Client] = None,
    ):
        self.settings = settings or get_settings()
        if not self.settings.vision_api_key:
            raise ConfigurationMissing(
                "Recognition API key is not set",
                details="Set VISION_API_KEY in the environment or .env file",
            )
        self._client = http_client

    @property
    def client(self) -> httpx.Client:
        if self._client is None:
            self._client = httpx.Client(timeout=self.settings.vision_timeout_seconds)
        return self._client

    def close(self) -> None:
        if self._client is not None:
            self._client.close()
            self._client = None

    def annotate(
        self,
        image_bytes: bytes,
        feature: Feature,
        max_results: int = 10,
    ) -> AnnotateImageResponse:
        """
        Run a single recognition feature on an image.

        Args:
            image_bytes: Encoded image (JPEG/PNG)
            feature: Feature type to request
            max_results: Maximum annotations to return (ignored by text detection)

        Returns:
            The first ``AnnotateImageResponse`` of the batch

        Raises:
            TransportError: network failure
            ProviderError: non-200 status, error payload or malformed body
        """
        payload = {
            "requests": [
                {
                    "image": {"content": base64.b64encode(image_bytes).decode("ascii")},
                    "features": [{"type": feature.value, "maxResults": max_results}],
                }
            ]
        }

        try:
            response = self.client.post(
                self.settings.vision_api_base_url,
                params={"key": self.settings.vision_api_key},
                json=payload,
            )
        except httpx.TransportError as e:
            logger.error(f"{feature.value} request failed: {e}")
            raise TransportError(f"{feature.value} request failed", details=str(e)) from e

        if response.status_code != 200:
            message = self._error_message(response)
            logger.error(f"{feature.value} returned HTTP {response.status_code}: {message}")
            raise ProviderError(
                f"Recognition service error: {message}",
                status_code=response.status_code,
            )

        try:
            batch = BatchAnnotateImagesResponse.model_validate(response.json())
        except (ValueError, ValidationError) as e:
            raise ProviderError(
                "Malformed recognition response",
                status_code=response.status_code,
                details=str(e),
            ) from e

        if not batch.responses:
            raise ProviderError("Empty recognition response", status_code=response.status_code)

        result = batch.responses[0]
        if result.error is not None and result.error.code:
            raise ProviderError(
                f"Recognition service error: {result.error.message}",
                status_code=response.status_code,
                details=f"code={result.error.code}",
            )
        return result

    @staticmethod
    def _error_message(response: httpx.Response) -> str:
        try:
            body = response.json()
        except ValueError:
            return response.text[:200] or response.reason_phrase
        error = body.get("error") if isinstance(body, dict) else None
        if isinstance(error, dict) and error.get("message"):
            return error["message"]
        return response.reason_phrase
