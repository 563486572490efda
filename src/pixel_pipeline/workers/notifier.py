"""Upload notifier - publishes one UploadEvent per blob store write."""

from typing import Any, Dict, List
from urllib.parse import unquote_plus

from ..core.error_handling import with_error_handling
from ..core.exceptions import ConfigurationError, PublishError, TransientIOError
from ..core.models import PipelineConfig, UploadEvent
from ..core.protocols import LoggerProtocol, TopicProtocol


def parse_storage_event(event: Dict[str, Any]) -> List[UploadEvent]:
    """
    Extract upload events from an S3 event notification.

    Object keys arrive URL-encoded and are decoded here. Records without an
    s3 section, such as the s3:TestEvent, are skipped.
    """
    uploads = []
    for record in event.get("Records", []):
        s3 = record.get("s3")
        if not s3:
            continue
        uploads.append(
            UploadEvent(
                bucket=s3["bucket"]["name"],
                key=unquote_plus(s3["object"]["key"]),
            )
        )
    return uploads


class UploadNotifier:
    """Publishes an UploadEvent to the fanout topic for each written object."""

    def __init__(
        self, topic: TopicProtocol, config: PipelineConfig, logger: LoggerProtocol
    ):
        if not config.topic_arn:
            raise ConfigurationError("topic_arn is required to publish upload events")
        self._topic = topic
        self._topic_arn = config.topic_arn
        self._logger = logger

    @with_error_handling
    def _publish(self, upload: UploadEvent) -> str:
        response = self._topic.publish(
            TopicArn=self._topic_arn, Message=upload.model_dump_json()
        )
        return response.get("MessageId", "")

    def publish(self, upload: UploadEvent) -> str:
        """Publish one event; raises PublishError if the topic rejects it."""
        try:
            message_id = self._publish(upload)
        except TransientIOError as e:
            self._logger.error(
                f"Failed to publish upload event for s3://{upload.bucket}/{upload.key}: {e}"
            )
            raise PublishError(str(e)) from e

        self._logger.info(
            f"Published upload event for s3://{upload.bucket}/{upload.key}",
            message_id=message_id,
        )
        return message_id

    def handle_event(self, event: Dict[str, Any]) -> Dict[str, Any]:
        """
        Publish every record of a storage notification.

        The first publish failure propagates, so the whole notification is
        retried; records already published are published again on retry.
        """
        uploads = parse_storage_event(event)
        message_ids = [self.publish(upload) for upload in uploads]
        return {"published": len(message_ids), "message_ids": message_ids}
