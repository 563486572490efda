"""Custom exceptions for the pixel pipeline."""

from __future__ import annotations

from typing import Dict, List


class PixelPipelineError(Exception):
    """Base exception for all pixel pipeline errors."""

    retryable = True


class TransientIOError(PixelPipelineError):
    """Error raised for blob store, topic or key-value store call failures."""


class PublishError(TransientIOError):
    """Error raised when an upload event cannot be published to the topic."""


class DecodeError(PixelPipelineError):
    """Error raised for corrupt or unsupported image bytes."""

    retryable = False


class SerializationError(PixelPipelineError):
    """Error raised for a malformed queue message body."""

    retryable = False


class ConfigurationError(PixelPipelineError):
    """Error raised for invalid configuration options."""

    retryable = False


class ResizeError(PixelPipelineError):
    """Aggregate error for a resize fan-out where one or more sizes failed."""

    def __init__(self, key: str, failures: Dict[str, str]):
        self.key = key
        self.failures = dict(failures)
        sizes = ", ".join(sorted(self.failures))
        super().__init__(f"Resize failed for {key}: {sizes}")

    @property
    def failed_sizes(self) -> List[str]:
        return sorted(self.failures)


class BatchProcessingError(PixelPipelineError):
    """Error raised to fail a whole batch under the all-or-nothing policy."""

    def __init__(self, failed_ids: List[str]):
        self.failed_ids = list(failed_ids)
        super().__init__(
            f"{len(self.failed_ids)} message(s) failed: {', '.join(self.failed_ids)}"
        )
