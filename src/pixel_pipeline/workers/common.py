"""Functions and base class shared by the queue workers."""

import json
import time
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, List, Optional

from pydantic import ValidationError

from ..core.codecs import CodecRegistry, EncodeOptions, default_registry
from ..core.error_handling import (
    BatchOperationContextManager,
    retry_storage_operation,
    with_error_handling,
)
from ..core.exceptions import (
    BatchProcessingError,
    PixelPipelineError,
    SerializationError,
    TransientIOError,
)
from ..core.image_utils import extract_filename
from ..core.models import (
    BatchResult,
    MessageResult,
    MessageState,
    PipelineConfig,
    QueueMessage,
    UploadEvent,
)
from ..core.observability import LogContext, MetricsCollector, PerformanceMetrics
from ..core.protocols import BlobStoreProtocol, LoggerProtocol
from .dead_letter import DeadLetterQueue

JPEG_CONTENT_TYPE = "image/jpeg"


@dataclass
class SourceObject:
    """Source image fetched fully into memory."""

    bucket: str
    key: str
    body: bytes
    content_type: str = ""
    content_length: int = 0
    last_modified: Optional[datetime] = None


@dataclass
class ProcessingContext:
    """Per-message state and logging context."""

    message_id: str
    log_context: LogContext
    state: MessageState = MessageState.RECEIVED
    start_time: float = field(default_factory=time.time)

    def advance(self, state: MessageState) -> LogContext:
        self.state = state
        self.log_context = self.log_context.with_operation(state.value)
        return self.log_context


def parse_upload_event(body: str) -> UploadEvent:
    """
    Parse a queue message body into an UploadEvent.

    Bodies wrapped in an SNS notification envelope are unwrapped first, so
    queues with and without raw message delivery are both accepted.

    Raises:
        SerializationError: If the body is not a valid upload event
    """
    try:
        payload = json.loads(body)
        if (
            isinstance(payload, dict)
            and payload.get("Type") == "Notification"
            and isinstance(payload.get("Message"), str)
        ):
            payload = json.loads(payload["Message"])
        return UploadEvent.model_validate(payload)
    except (TypeError, ValueError) as e:
        # ValidationError is a ValueError
        detail = e.errors()[0]["msg"] if isinstance(e, ValidationError) else str(e)
        raise SerializationError(f"Malformed upload event: {detail}") from e


@retry_storage_operation()
@with_error_handling
def fetch_source_object(
    blob_store: BlobStoreProtocol, bucket: str, key: str
) -> SourceObject:
    """Download an object fully into memory."""
    response = blob_store.get_object(Bucket=bucket, Key=key)
    stream = response["Body"]
    try:
        body = stream.read()
    except OSError as e:
        raise TransientIOError(f"Reading s3://{bucket}/{key} failed: {e}") from e
    finally:
        stream.close()

    return SourceObject(
        bucket=bucket,
        key=key,
        body=body,
        content_type=response.get("ContentType", ""),
        content_length=response.get("ContentLength", len(body)),
        last_modified=response.get("LastModified"),
    )


@retry_storage_operation()
@with_error_handling
def upload_jpeg(blob_store: BlobStoreProtocol, bucket: str, key: str, data: bytes):
    """Upload JPEG bytes, overwriting any existing object at the key."""
    blob_store.put_object(
        Bucket=bucket, Key=key, Body=data, ContentType=JPEG_CONTENT_TYPE
    )


def parse_queue_event(event: Dict[str, Any]) -> List[QueueMessage]:
    """Extract messages from an SQS-style event payload."""
    return [
        QueueMessage(message_id=record["messageId"], body=record["body"])
        for record in event.get("Records", [])
    ]


class BaseWorker(ABC):
    """
    A queue consumer that applies one transform to each UploadEvent.

    Messages in a batch are handled one after another. Every message gets its
    own MessageResult, so only failing messages are redelivered.
    """

    name = "worker"

    def __init__(
        self,
        blob_store: BlobStoreProtocol,
        logger: LoggerProtocol,
        config: Optional[PipelineConfig] = None,
        codecs: Optional[CodecRegistry] = None,
        dead_letter: Optional[DeadLetterQueue] = None,
        metrics_collector: Optional[MetricsCollector] = None,
    ):
        self._blob_store = blob_store
        self._logger = logger
        self._config = config or PipelineConfig()
        self._codecs = codecs or default_registry()
        self._dead_letter = dead_letter
        self._metrics_collector = metrics_collector

    @property
    def encode_options(self) -> EncodeOptions:
        return EncodeOptions(quality=self._config.jpeg_quality)

    @abstractmethod
    def process(self, event: UploadEvent, context: ProcessingContext) -> List[str]:
        """Apply the transform; returns the keys written."""

    def handle_event(self, event: Dict[str, Any]) -> Dict[str, Any]:
        """
        Entry point for a queue-triggered invocation.

        Returns a partial batch response listing the messages to redeliver.
        With report_batch_item_failures disabled, any failure raises
        BatchProcessingError so the whole batch is redelivered instead.
        """
        result = self.handle_batch(parse_queue_event(event))

        if not self._config.report_batch_item_failures and result.failed_ids:
            raise BatchProcessingError(result.failed_ids)

        return result.to_response()

    def handle_batch(self, messages: List[QueueMessage]) -> BatchResult:
        batch = BatchResult()

        with BatchOperationContextManager(f"{self.name} batch") as tracker:
            for message in messages:
                result = self.handle_message(message)
                batch.results.append(result)
                if result.success:
                    tracker.add_success()
                else:
                    tracker.add_error(result.error, item_identifier=message.message_id)

        return batch

    def handle_message(self, message: QueueMessage) -> MessageResult:
        context = ProcessingContext(
            message_id=message.message_id,
            log_context=LogContext(
                correlation_id=message.message_id,
                operation=MessageState.RECEIVED.value,
                component=self.name,
            ),
        )
        result = MessageResult(message_id=message.message_id)
        self._logger.debug("Received message", context.log_context)

        try:
            event = parse_upload_event(message.body)
            context.log_context = context.log_context.with_metadata(
                bucket=event.bucket,
                key=event.key,
                derived_name=extract_filename(event.key),
            )
            context.advance(MessageState.PARSED)

            result.outputs = self.process(event, context)

            context.advance(MessageState.COMPLETE)
            result.success = True
            self._logger.info("Message processed", context.log_context)

        except PixelPipelineError as e:
            self._record_failure(result, context, e)
            self._logger.error(
                f"Message failed: {e}",
                context.log_context,
                error_type=type(e).__name__,
                retryable=e.retryable,
            )
            if not e.retryable:
                self._dead_letter_message(message, result, e)

        except Exception as e:  # noqa: BLE001
            # Unknown failures stay retryable; the queue redelivers them
            self._record_failure(result, context, e)
            self._logger.error(
                f"Unexpected error: {e}",
                context.log_context,
                error_type=type(e).__name__,
            )

        result.state = context.state
        result.processing_time = time.time() - context.start_time
        self._record_metric(context, result)
        return result

    def fetch(self, event: UploadEvent, context: ProcessingContext) -> SourceObject:
        log_context = context.advance(MessageState.FETCHING)
        source = fetch_source_object(self._blob_store, event.bucket, event.key)
        self._logger.debug(
            "Fetched source object",
            log_context,
            content_type=source.content_type,
            content_length=source.content_length,
        )
        return source

    def _record_failure(
        self, result: MessageResult, context: ProcessingContext, error: Exception
    ) -> None:
        result.success = False
        result.failed_stage = context.state
        result.error = str(error)
        result.error_type = type(error).__name__
        context.state = MessageState.FAILED

    def _dead_letter_message(
        self, message: QueueMessage, result: MessageResult, error: PixelPipelineError
    ) -> None:
        if self._dead_letter is None:
            return
        try:
            self._dead_letter.send(message, error, worker=self.name)
        except TransientIOError as e:
            self._logger.error(
                f"Dead-letter send failed, leaving message for redelivery: {e}"
            )
            return
        result.dead_lettered = True

    def _record_metric(self, context: ProcessingContext, result: MessageResult) -> None:
        if self._metrics_collector is None:
            return
        self._metrics_collector.record_metric(
            PerformanceMetrics(
                operation=self.name,
                start_time=context.start_time,
                end_time=context.start_time + result.processing_time,
                success=result.success,
                error_message=result.error or None,
                metadata={"message_id": result.message_id},
            )
        )
