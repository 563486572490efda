"""Protocol definitions for dependency injection and testability."""

from typing import Any, Dict, Protocol


class BlobStoreProtocol(Protocol):
    """Protocol for blob store (S3 client) operations."""

    def get_object(self, Bucket: str, Key: str) -> Dict[str, Any]:
        """Get object; the response carries Body, ContentType, ContentLength."""
        ...

    def put_object(
        self, Bucket: str, Key: str, Body: bytes, ContentType: str
    ) -> Dict[str, Any]:
        """Put object, overwriting any existing one."""
        ...


class TopicProtocol(Protocol):
    """Protocol for pub/sub topic (SNS client) operations."""

    def publish(self, TopicArn: str, Message: str) -> Dict[str, Any]:
        ...


class KeyValueStoreProtocol(Protocol):
    """Protocol for key-value store (DynamoDB table resource) operations."""

    def put_item(self, Item: Dict[str, Any]) -> Dict[str, Any]:
        ...


class QueueProtocol(Protocol):
    """Protocol for queue (SQS client) operations used for dead-lettering."""

    def send_message(self, QueueUrl: str, MessageBody: str) -> Dict[str, Any]:
        ...


class LoggerProtocol(Protocol):
    """Protocol for logging operations."""

    def debug(self, message: str, context: Any = None, **kwargs: Any) -> None:
        ...

    def info(self, message: str, context: Any = None, **kwargs: Any) -> None:
        ...

    def warning(self, message: str, context: Any = None, **kwargs: Any) -> None:
        ...

    def error(self, message: str, context: Any = None, **kwargs: Any) -> None:
        ...
