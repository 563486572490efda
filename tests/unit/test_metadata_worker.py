"""Unit tests for MetadataWorker."""

import io
from datetime import datetime, timezone

import pytest
from PIL import Image

from pixel_pipeline.core.exceptions import TransientIOError
from pixel_pipeline.core.models import ImageMetadata, MetadataRecord
from pixel_pipeline.core.observability import LogContext
from pixel_pipeline.testing.fakes import (
    FakeLogger,
    FakeTable,
    create_png_header,
    create_test_image,
    queue_event,
    setup_test_environment,
)
from pixel_pipeline.workers.common import (
    ProcessingContext,
    parse_queue_event,
    parse_upload_event,
)
from pixel_pipeline.workers.metadata import MetadataWorker, put_metadata_record


def _event(key, bucket="test-images"):
    return queue_event({"bucket": bucket, "key": key})


class TestMetadataWorker:
    """Tests for metadata extraction and storage."""

    def setup_method(self):
        self.blob_store = setup_test_environment()
        self.table = FakeTable()
        self.logger = FakeLogger()
        self.worker = MetadataWorker(self.blob_store, self.table, self.logger)

    @pytest.mark.parametrize(
        "key, name, fmt",
        [
            ("photos/wide.jpg", "wide", "jpeg"),
            ("photos/logo.png", "logo", "png"),
            ("photos/anim.gif", "anim", "gif"),
        ],
    )
    def test_record_matches_reference_decode(self, key, name, fmt):
        """Dimensions agree with an independent Pillow decode of the same bytes."""
        source = self.blob_store.get_bucket("test-images").get_object(key)
        reference = Image.open(io.BytesIO(source.body))
        reference.load()

        response = self.worker.handle_event(_event(key))

        assert response == {"batchItemFailures": []}
        item = self.table.get_item(name)
        assert item["name"] == name
        assert item["bucket"] == "test-images"
        metadata = item["metadata"]
        assert (metadata["width"], metadata["height"]) == reference.size
        assert metadata["format"] == fmt
        assert metadata["file_size"] == len(source.body)
        assert metadata["file_name"] == key.split("/")[-1]
        assert metadata["last_modified"] == "2024-01-01T00:00:00Z"

    def test_last_modified_comes_from_fetched_object(self):
        bucket = self.blob_store.get_bucket("test-images")
        bucket.add_object(
            "late.png",
            create_test_image(10, 10, "PNG"),
            last_modified=datetime(2025, 3, 4, 5, 6, 7, tzinfo=timezone.utc),
        )

        self.worker.handle_event(_event("late.png"))

        assert self.table.get_item("late")["metadata"]["last_modified"] == (
            "2025-03-04T05:06:07Z"
        )

    def test_very_large_image_header_is_recorded(self):
        """Metadata comes from the header alone, whatever the pixel count."""
        data = create_png_header(20000, 10000)
        self.blob_store.get_bucket("test-images").add_object(
            "big.png", data, content_type="image/png"
        )

        result = self.worker.handle_batch(parse_queue_event(_event("big.png"))).results[0]

        assert result.success is True
        metadata = self.table.get_item("big")["metadata"]
        assert (metadata["width"], metadata["height"]) == (20000, 10000)
        assert metadata["format"] == "png"
        assert metadata["file_size"] == len(data)

    def test_reprocessing_overwrites_with_identical_record(self):
        self.worker.handle_event(_event("photos/wide.jpg"))
        first = dict(self.table.get_item("wide"))

        self.worker.handle_event(_event("photos/wide.jpg"))

        assert self.table.put_count == 2
        assert len(self.table.items) == 1
        assert self.table.get_item("wide") == first

    @pytest.mark.parametrize("key", ["photos/notes.txt", "photos/broken.jpg"])
    def test_corrupt_image_writes_no_record(self, key):
        response = self.worker.handle_event(_event(key))

        assert response == {"batchItemFailures": [{"itemIdentifier": "msg-1"}]}
        assert self.table.items == {}

    def test_corrupt_image_keeps_previous_record(self):
        bucket = self.blob_store.get_bucket("test-images")
        self.worker.handle_event(_event("photos/wide.jpg"))
        previous = dict(self.table.get_item("wide"))

        bucket.add_object("photos/wide.jpg", b"garbage")
        self.worker.handle_event(_event("photos/wide.jpg"))

        assert self.table.get_item("wide") == previous

    def test_fetch_failure_writes_no_record(self):
        self.blob_store.set_failure_mode(True)

        response = self.worker.handle_event(_event("photos/wide.jpg"))

        assert response["batchItemFailures"] == [{"itemIdentifier": "msg-1"}]
        assert self.table.put_count == 0

    def test_table_failure_fails_message(self, monkeypatch):
        monkeypatch.setattr("time.sleep", lambda seconds: None)
        self.table.should_fail = True

        result = self.worker.handle_batch(
            parse_queue_event(_event("photos/wide.jpg"))
        ).results[0]

        assert result.success is False
        assert result.error_type == "TransientIOError"

    def test_extract_probes_without_writing(self):
        messages = parse_queue_event(_event("photos/logo.png"))

        record = self.worker.extract(
            parse_upload_event(messages[0].body),
            ProcessingContext(message_id="m", log_context=LogContext()),
        )

        assert record.name == "logo"
        assert (record.metadata.width, record.metadata.height) == (640, 480)
        assert self.table.items == {}


class TestPutMetadataRecord:
    def test_maps_storage_errors(self, monkeypatch):
        monkeypatch.setattr("time.sleep", lambda seconds: None)
        table = FakeTable()
        table.should_fail = True
        record = MetadataRecord(
            name="a",
            bucket="b",
            metadata=ImageMetadata(
                width=1,
                height=1,
                format="png",
                file_size=1,
                file_name="a.png",
                last_modified="2024-01-01T00:00:00Z",
            ),
        )

        with pytest.raises(TransientIOError):
            put_metadata_record(table, record)

        assert table.items == {}
