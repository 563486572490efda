"""Dead-letter routing for messages that can never succeed."""

import json
from datetime import datetime, timezone

from ..core.error_handling import with_error_handling
from ..core.exceptions import PixelPipelineError
from ..core.models import QueueMessage
from ..core.protocols import LoggerProtocol, QueueProtocol


class DeadLetterQueue:
    """Sends non-retryable messages, with their failure, to a dead-letter queue."""

    def __init__(self, queue_client: QueueProtocol, queue_url: str, logger: LoggerProtocol):
        self._queue_client = queue_client
        self._queue_url = queue_url
        self._logger = logger

    @property
    def queue_url(self) -> str:
        return self._queue_url

    @with_error_handling
    def send(self, message: QueueMessage, error: PixelPipelineError, worker: str) -> None:
        payload = {
            "messageId": message.message_id,
            "body": message.body,
            "worker": worker,
            "error_type": type(error).__name__,
            "error": str(error),
            "failed_at": datetime.now(timezone.utc).isoformat(),
        }
        self._queue_client.send_message(
            QueueUrl=self._queue_url, MessageBody=json.dumps(payload)
        )
        self._logger.warning(
            f"Message {message.message_id} sent to dead-letter queue",
            error_type=payload["error_type"],
        )
