# src/pixel_pipeline/core/error_handling.py

import functools
import logging
import time
from typing import Any, Callable, Dict, List, TypeVar

from botocore.exceptions import BotoCoreError, ClientError
from PIL import Image, UnidentifiedImageError

from .exceptions import DecodeError, PixelPipelineError, TransientIOError

RETRYABLE_STORAGE_ERROR_CODES = (
    "ProvisionedThroughputExceededException",
    "ThrottlingException",
    "RequestLimitExceeded",
    "ServiceUnavailable",
    "SlowDown",
)

# Pillow raises OSError/SyntaxError for truncated or malformed pixel data
IMAGE_DECODE_ERRORS = (
    UnidentifiedImageError,
    Image.DecompressionBombError,
    SyntaxError,
    OSError,
)

F = TypeVar("F", bound=Callable[..., Any])


def with_error_handling(func: F) -> F:
    """
    A decorator to translate library errors into the pipeline taxonomy.

    botocore failures become TransientIOError, images Pillow cannot identify
    become DecodeError. Pipeline errors pass through untouched.
    """

    @functools.wraps(func)
    def wrapper(*args: Any, **kwargs: Any) -> Any:
        logger = logging.getLogger(func.__module__ + "." + func.__name__)
        try:
            return func(*args, **kwargs)
        except PixelPipelineError:
            raise
        except (ClientError, BotoCoreError) as e:
            logger.error(f"Storage call failed in '{func.__name__}': {e}")
            raise TransientIOError(f"{func.__name__} failed: {e}") from e
        except (UnidentifiedImageError, Image.DecompressionBombError) as e:
            logger.error(f"Image decode failed in '{func.__name__}': {e}")
            raise DecodeError(f"{func.__name__} failed: {e}") from e

    return wrapper  # type: ignore[return-value]


def _error_code(error: BaseException) -> str:
    cause = error.__cause__ if isinstance(error, TransientIOError) else error
    if isinstance(cause, ClientError):
        return cause.response.get("Error", {}).get("Code", "")
    return ""


def retry_storage_operation(max_attempts=3, initial_delay=0.2, backoff_factor=2):
    """
    Decorator to retry throttled storage operations with exponential backoff.

    Only errors whose botocore error code is in RETRYABLE_STORAGE_ERROR_CODES
    are retried; everything else propagates on the first attempt.
    """

    def decorator(func):
        @functools.wraps(func)
        def wrapper(*args, **kwargs):
            logger = logging.getLogger(func.__module__ + "." + func.__name__)
            delay = initial_delay
            attempts = 0
            while True:
                attempts += 1
                try:
                    return func(*args, **kwargs)
                except (TransientIOError, ClientError) as e:
                    if _error_code(e) not in RETRYABLE_STORAGE_ERROR_CODES:
                        raise
                    if attempts >= max_attempts:
                        logger.error(
                            f"Storage operation '{func.__name__}' failed after "
                            f"{max_attempts} attempts. Error: {e}"
                        )
                        raise
                    logger.warning(
                        f"Storage operation '{func.__name__}' throttled. "
                        f"Attempt {attempts}/{max_attempts}. Retrying in {delay:.2f}s."
                    )
                    time.sleep(delay)
                    delay *= backoff_factor

        return wrapper

    return decorator


class BatchOperationContextManager:
    """
    Context manager for batch operations to collect and summarize errors.
    """

    def __init__(self, operation_name="Batch Operation"):
        self.operation_name = operation_name
        self.errors: List[Dict[str, str]] = []
        self.succeeded = 0
        self.logger = logging.getLogger(
            self.__class__.__module__ + "." + self.__class__.__name__
        )

    def __enter__(self):
        self.logger.info(f"Starting {self.operation_name}.")
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        if self.errors:
            self.logger.warning(
                f"{self.operation_name} completed with {len(self.errors)} error(s) "
                f"and {self.succeeded} success(es)."
            )
            for i, error_detail in enumerate(self.errors):
                self.logger.error(
                    f"  Error {i + 1}/{len(self.errors)} for item "
                    f"'{error_detail['item']}': {error_detail['error']}"
                )
        elif exc_type:
            self.logger.error(
                f"{self.operation_name} failed due to an unhandled exception: {exc_val}"
            )
        else:
            self.logger.info(
                f"{self.operation_name} completed successfully "
                f"({self.succeeded} item(s))."
            )
        return False

    def add_success(self) -> None:
        self.succeeded += 1

    def add_error(self, error_message: str, item_identifier: str = "Unknown item"):
        """
        Report an error for a specific item within the 'with' block.

        Args:
            error_message: The error message or exception string.
            item_identifier: A string identifying the item that failed (e.g. message id).
        """
        self.errors.append({"item": item_identifier, "error": str(error_message)})
        self.logger.debug(
            f"Error added for item '{item_identifier}' in {self.operation_name}: "
            f"{error_message}"
        )

    @property
    def failed_items(self) -> List[str]:
        return [error["item"] for error in self.errors]
