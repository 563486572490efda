# tests/core/test_error_handling.py

import pytest
from unittest import mock

from botocore.exceptions import ClientError, EndpointConnectionError
from PIL import UnidentifiedImageError

from pixel_pipeline.core.exceptions import (
    BatchProcessingError,
    ConfigurationError,
    DecodeError,
    PixelPipelineError,
    PublishError,
    ResizeError,
    SerializationError,
    TransientIOError,
)
from pixel_pipeline.core.error_handling import (
    with_error_handling,
    retry_storage_operation,
    BatchOperationContextManager,
)


def _client_error(code):
    return ClientError(
        error_response={"Error": {"Code": code, "Message": "Details"}},
        operation_name="GetObject",
    )


# --- Tests for custom exceptions ---

def test_custom_exception_inheritance():
    """All pipeline errors share a common base."""
    for error_class in (
        TransientIOError,
        PublishError,
        DecodeError,
        SerializationError,
        ConfigurationError,
        ResizeError,
        BatchProcessingError,
    ):
        assert issubclass(error_class, PixelPipelineError)
    assert issubclass(PublishError, TransientIOError)


def test_retryable_classification():
    """IO failures are retryable, bad input is not."""
    assert TransientIOError.retryable is True
    assert PublishError.retryable is True
    assert DecodeError.retryable is False
    assert SerializationError.retryable is False


def test_resize_error_lists_failed_sizes():
    """ResizeError names every failed size."""
    error = ResizeError("photos/a.jpg", {"large": "boom", "thumbnail": "bang"})

    assert error.failed_sizes == ["large", "thumbnail"]
    assert "large" in str(error)
    assert "thumbnail" in str(error)
    assert "photos/a.jpg" in str(error)


def test_batch_processing_error_carries_ids():
    error = BatchProcessingError(["msg-1", "msg-3"])
    assert error.failed_ids == ["msg-1", "msg-3"]
    assert "2 message(s) failed" in str(error)


# --- Tests for @with_error_handling decorator ---

@pytest.fixture
def mock_logger():
    """Fixture to mock the logger the decorators look up in their own module."""
    with mock.patch("pixel_pipeline.core.error_handling.logging") as mock_logging:
        mock_log_instance = mock.Mock()
        mock_logging.getLogger.return_value = mock_log_instance
        yield mock_log_instance


def test_with_error_handling_wraps_client_error(mock_logger):
    """botocore ClientError becomes TransientIOError."""
    @with_error_handling
    def func_raising_client_error():
        raise _client_error("InternalError")

    with pytest.raises(TransientIOError) as excinfo:
        func_raising_client_error()

    assert isinstance(excinfo.value.__cause__, ClientError)
    mock_logger.error.assert_called_once()


def test_with_error_handling_wraps_botocore_error(mock_logger):
    """Connection-level botocore errors become TransientIOError."""
    @with_error_handling
    def func_raising_connection_error():
        raise EndpointConnectionError(endpoint_url="https://s3.example.com")

    with pytest.raises(TransientIOError):
        func_raising_connection_error()


def test_with_error_handling_wraps_pil_error(mock_logger):
    """UnidentifiedImageError becomes DecodeError."""
    @with_error_handling
    def func_raising_pil_error():
        raise UnidentifiedImageError("Cannot identify image file")

    with pytest.raises(DecodeError) as excinfo:
        func_raising_pil_error()

    assert isinstance(excinfo.value.__cause__, UnidentifiedImageError)


def test_with_error_handling_passes_pipeline_errors(mock_logger):
    """Pipeline errors are re-raised untouched and not logged again."""
    @with_error_handling
    def func_raising_pipeline_error():
        raise SerializationError("bad body")

    with pytest.raises(SerializationError):
        func_raising_pipeline_error()

    mock_logger.error.assert_not_called()


def test_with_error_handling_reraises_unmapped_exception(mock_logger):
    """Unmapped exceptions propagate unchanged."""
    class CustomNonMappedError(Exception):
        pass

    @with_error_handling
    def func_raising_unmapped_error():
        raise CustomNonMappedError("This one is not mapped.")

    with pytest.raises(CustomNonMappedError):
        func_raising_unmapped_error()


def test_with_error_handling_returns_value():
    @with_error_handling
    def func_ok():
        return 42

    assert func_ok() == 42


# --- Tests for @retry_storage_operation decorator ---

@mock.patch("time.sleep", return_value=None)
def test_retry_storage_operation_retries_throttling(mock_sleep):
    """Throttling errors are retried until the call succeeds."""
    calls = {"count": 0}

    @retry_storage_operation(max_attempts=3, initial_delay=0.1)
    @with_error_handling
    def flaky():
        calls["count"] += 1
        if calls["count"] < 3:
            raise _client_error("SlowDown")
        return "ok"

    assert flaky() == "ok"
    assert calls["count"] == 3
    assert mock_sleep.call_count == 2
    mock_sleep.assert_any_call(0.1)
    mock_sleep.assert_any_call(0.2)


@mock.patch("time.sleep", return_value=None)
def test_retry_storage_operation_gives_up(mock_sleep):
    """The last throttling error propagates after max_attempts."""
    calls = {"count": 0}

    @retry_storage_operation(max_attempts=2)
    @with_error_handling
    def always_throttled():
        calls["count"] += 1
        raise _client_error("ThrottlingException")

    with pytest.raises(TransientIOError):
        always_throttled()

    assert calls["count"] == 2
    assert mock_sleep.call_count == 1


@mock.patch("time.sleep", return_value=None)
def test_retry_storage_operation_does_not_retry_other_errors(mock_sleep):
    """Non-throttling errors fail on the first attempt."""
    calls = {"count": 0}

    @retry_storage_operation(max_attempts=3)
    @with_error_handling
    def missing():
        calls["count"] += 1
        raise _client_error("NoSuchKey")

    with pytest.raises(TransientIOError):
        missing()

    assert calls["count"] == 1
    mock_sleep.assert_not_called()


@mock.patch("time.sleep", return_value=None)
def test_retry_storage_operation_ignores_decode_errors(mock_sleep):
    @retry_storage_operation(max_attempts=3)
    def bad_image():
        raise DecodeError("corrupt")

    with pytest.raises(DecodeError):
        bad_image()

    mock_sleep.assert_not_called()


# --- Tests for BatchOperationContextManager ---

def test_batch_context_manager_collects_errors():
    with BatchOperationContextManager("metadata batch") as tracker:
        tracker.add_success()
        tracker.add_error("boom", item_identifier="msg-2")
        tracker.add_error("bang", item_identifier="msg-3")

    assert tracker.succeeded == 1
    assert tracker.failed_items == ["msg-2", "msg-3"]
    assert tracker.errors[0] == {"item": "msg-2", "error": "boom"}


def test_batch_context_manager_propagates_exceptions():
    """Exceptions raised inside the block are not suppressed."""
    with pytest.raises(RuntimeError):
        with BatchOperationContextManager("batch"):
            raise RuntimeError("unhandled")


def test_batch_context_manager_logs_summary(mock_logger):
    with BatchOperationContextManager("converter batch") as tracker:
        tracker.add_error("boom", item_identifier="msg-1")

    mock_logger.warning.assert_called_once()
    assert "1 error(s)" in mock_logger.warning.call_args[0][0]
    mock_logger.error.assert_called_once()


def test_with_error_handling_logs_failures(caplog):
    """Failures are reported through stdlib logging under the function's module."""
    @with_error_handling
    def failing_call():
        raise _client_error("InternalError")

    with caplog.at_level("ERROR"):
        with pytest.raises(TransientIOError):
            failing_call()

    assert any(
        record.name.endswith(".failing_call") and "failing_call" in record.getMessage()
        for record in caplog.records
    )
