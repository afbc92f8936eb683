"""Error taxonomy for the detection engine."""

from typing import Optional


class VisionError(Exception):
    """Base class for every error raised by the detection engine."""

    def __init__(self, message: str, details: Optional[str] = None):
        super().__init__(message)
        self.message = message
        self.details = details

    def __str__(self) -> str:
        if self.details:
            return f"{type(self).__name__}: {self.message} ({self.details})"
        return f"{type(self).__name__}: {self.message}"

    @property
    def user_message(self) -> str:
        """Message safe to show to an end user."""
        return self.message


class ConfigurationMissing(VisionError):
    """A required setting or food-data key is absent. Fatal, never retried."""

    @property
    def user_message(self) -> str:
        return "The detection service is not configured. Check the server settings."


class TransportError(VisionError):
    """The recognition service could not be reached."""

    @property
    def user_message(self) -> str:
        return "Network error while contacting the recognition service. Check the connection."


class ProviderError(VisionError):
    """The recognition service answered with an error payload."""

    def __init__(
        self,
        message: str,
        status_code: Optional[int] = None,
        details: Optional[str] = None,
    ):
        super().__init__(message, details)
        self.status_code = status_code

    @property
    def user_message(self) -> str:
        if self.status_code in (401, 403):
            return "The recognition API key is invalid. Check the configuration."
        if self.status_code == 429:
            return "The recognition API quota was exceeded. Please retry later."
        if self.status_code is not None and self.status_code >= 500:
            return "The recognition service failed. Please retry later."
        return "The recognition service rejected the request."


class ImageProcessingError(VisionError):
    """Unreadable image or invalid crop geometry."""

    @property
    def user_message(self) -> str:
        return "The image could not be processed. Please choose another image."


class NoDetectionResult(VisionError):
    """Nothing was found. An outcome, not a failure: callers fall back on it."""

    def __init__(self, message: str = "No detection result", details: Optional[str] = None):
        super().__init__(message, details)

    @property
    def user_message(self) -> str:
        return "No ingredients were detected. Please try another image."


class DetectionCancelled(VisionError):
    """The caller aborted the request."""

    def __init__(self, message: str = "Detection cancelled", details: Optional[str] = None):
        super().__init__(message, details)
