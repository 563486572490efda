"""Upload notifier and the queue workers it fans out to."""

from .common import BaseWorker, SourceObject, parse_upload_event
from .converter import ConverterWorker
from .dead_letter import DeadLetterQueue
from .metadata import MetadataWorker
from .notifier import UploadNotifier, parse_storage_event
from .resizer import ResizerWorker

__all__ = [
    "BaseWorker",
    "SourceObject",
    "parse_upload_event",
    "parse_storage_event",
    "UploadNotifier",
    "MetadataWorker",
    "ConverterWorker",
    "ResizerWorker",
    "DeadLetterQueue",
]
