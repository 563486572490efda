"""Core utilities and shared components for the pixel pipeline."""

from .codecs import (
    CodecRegistry,
    EncodeOptions,
    ImageCodec,
    ImageHeader,
    JpegCodec,
    PillowCodec,
    default_registry,
)
from .image_utils import (
    calculate_target_size,
    converted_key,
    extract_filename,
    resize_image,
    resized_key,
)
from .logging_config import get_logger, setup_logger
from .exceptions import (
    BatchProcessingError,
    ConfigurationError,
    DecodeError,
    PixelPipelineError,
    PublishError,
    ResizeError,
    SerializationError,
    TransientIOError,
)
from .models import (
    BatchResult,
    ImageMetadata,
    MessageResult,
    MessageState,
    MetadataRecord,
    PipelineConfig,
    QueueMessage,
    SizeSpec,
    UploadEvent,
)

__all__ = [
    "PipelineConfig",
    "UploadEvent",
    "QueueMessage",
    "SizeSpec",
    "ImageMetadata",
    "MetadataRecord",
    "MessageResult",
    "MessageState",
    "BatchResult",
    "CodecRegistry",
    "EncodeOptions",
    "ImageCodec",
    "ImageHeader",
    "JpegCodec",
    "PillowCodec",
    "default_registry",
    "calculate_target_size",
    "converted_key",
    "extract_filename",
    "resize_image",
    "resized_key",
    "setup_logger",
    "get_logger",
    "PixelPipelineError",
    "TransientIOError",
    "PublishError",
    "DecodeError",
    "SerializationError",
    "ConfigurationError",
    "ResizeError",
    "BatchProcessingError",
]
