"""Shared data models for the pixel pipeline."""

import os
from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from .exceptions import ConfigurationError


class UploadEvent(BaseModel):
    """The message published for every new object in the blob store."""

    model_config = ConfigDict(frozen=True)

    bucket: str = Field(min_length=1)
    key: str = Field(min_length=1)


class QueueMessage(BaseModel):
    """A single message delivered by the queue."""

    message_id: str
    body: str


class SizeSpec(BaseModel):
    """Named resize target; height follows the source aspect ratio."""

    model_config = ConfigDict(frozen=True)

    name: str
    width: int = Field(gt=0)


DEFAULT_SIZES = (
    SizeSpec(name="thumbnail", width=100),
    SizeSpec(name="medium", width=500),
    SizeSpec(name="large", width=1000),
)


class ImageMetadata(BaseModel):
    """Metadata extracted from a source image."""

    width: int
    height: int
    format: str
    file_size: int
    file_name: str
    last_modified: str


class MetadataRecord(BaseModel):
    """Key-value record keyed by the derived name of the source key."""

    name: str
    bucket: str
    metadata: ImageMetadata

    def to_item(self) -> Dict[str, Any]:
        return self.model_dump()


class MessageState(str, Enum):
    """Stages a message moves through; any failing transition ends in FAILED."""

    RECEIVED = "received"
    PARSED = "parsed"
    FETCHING = "fetching"
    DECODING = "decoding"
    TRANSFORMING = "transforming"
    UPLOADING = "uploading"
    COMPLETE = "complete"
    FAILED = "failed"


class MessageResult(BaseModel):
    """Result of processing a single queue message."""

    message_id: str
    state: MessageState = MessageState.RECEIVED
    failed_stage: Optional[MessageState] = None
    success: bool = False
    dead_lettered: bool = False
    error: str = ""
    error_type: str = ""
    outputs: List[str] = Field(default_factory=list)
    processing_time: float = 0.0


class BatchResult(BaseModel):
    """Per-message outcome of a batch, renderable as a partial batch response."""

    results: List[MessageResult] = Field(default_factory=list)

    @property
    def failed_ids(self) -> List[str]:
        return [
            r.message_id for r in self.results if not r.success and not r.dead_lettered
        ]

    def to_response(self) -> Dict[str, Any]:
        return {
            "batchItemFailures": [
                {"itemIdentifier": message_id} for message_id in self.failed_ids
            ]
        }


_ENV_FIELDS = {
    "topic_arn": "PIXEL_TOPIC_ARN",
    "metadata_table": "PIXEL_METADATA_TABLE",
    "dead_letter_queue_url": "PIXEL_DEAD_LETTER_QUEUE_URL",
    "converted_prefix": "PIXEL_CONVERTED_PREFIX",
    "resized_prefix": "PIXEL_RESIZED_PREFIX",
    "jpeg_quality": "PIXEL_JPEG_QUALITY",
    "report_batch_item_failures": "PIXEL_REPORT_BATCH_ITEM_FAILURES",
    "debug": "PIXEL_DEBUG",
}


class PipelineConfig(BaseModel):
    """Configuration shared by the notifier and the workers."""

    topic_arn: str = ""
    metadata_table: str = "pixel-metadata"
    dead_letter_queue_url: Optional[str] = None
    converted_prefix: str = "converted/"
    resized_prefix: str = "resized/"
    jpeg_quality: int = Field(default=100, ge=1, le=100)
    resize_sizes: List[SizeSpec] = Field(default_factory=lambda: list(DEFAULT_SIZES))
    report_batch_item_failures: bool = True
    debug: bool = False

    @field_validator("converted_prefix", "resized_prefix")
    @classmethod
    def _ensure_trailing_slash(cls, value: str) -> str:
        if value and not value.endswith("/"):
            return value + "/"
        return value

    @classmethod
    def from_env(cls, environ: Optional[Dict[str, str]] = None) -> "PipelineConfig":
        """Build a config from PIXEL_* environment variables."""
        environ = os.environ if environ is None else environ
        values = {
            field: environ[var] for field, var in _ENV_FIELDS.items() if var in environ
        }
        try:
            return cls(**values)
        except ValidationError as e:
            raise ConfigurationError(f"Invalid pipeline configuration: {e}") from e
