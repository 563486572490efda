"""Testing utilities and fakes for the pixel pipeline."""

from .fakes import (
    BlobObject,
    Bucket,
    FakeBlobStore,
    FakeClients,
    FakeLogger,
    FakeQueue,
    FakeTable,
    FakeTopic,
    create_png_header,
    create_test_image,
    queue_event,
    setup_test_environment,
    storage_event,
)

__all__ = [
    "BlobObject",
    "Bucket",
    "FakeBlobStore",
    "FakeClients",
    "FakeLogger",
    "FakeQueue",
    "FakeTable",
    "FakeTopic",
    "create_png_header",
    "create_test_image",
    "queue_event",
    "setup_test_environment",
    "storage_event",
]
