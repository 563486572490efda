"""Resizer worker - fans out one resize task per configured size."""

from concurrent.futures import ThreadPoolExecutor, as_completed
from typing import Dict, List

from PIL import Image

from ..core.exceptions import ResizeError
from ..core.image_utils import extract_filename, resize_image, resized_key, to_rgb
from ..core.models import MessageState, SizeSpec, UploadEvent
from ..core.observability import LogContext
from .common import BaseWorker, ProcessingContext, upload_jpeg


class ResizerWorker(BaseWorker):
    """
    Writes resized/{name}/{size}.jpg for every size in the config.

    The source is decoded once and shared read-only by the resize tasks,
    which run in a pool sized to the number of sizes and are joined before
    the message completes. A failure in any task fails the message.
    """

    name = "resizer"

    def resize_and_upload(
        self,
        image: Image.Image,
        size: SizeSpec,
        event: UploadEvent,
        log_context: LogContext,
    ) -> str:
        resized = resize_image(image, size.width)
        jpeg_bytes = self._codecs.encode(resized, "jpeg", self.encode_options)

        dest_key = resized_key(event.key, size.name, self._config.resized_prefix)
        upload_jpeg(self._blob_store, event.bucket, dest_key, jpeg_bytes)
        self._logger.debug(
            f"Uploaded {size.name} {resized.size[0]}x{resized.size[1]}",
            log_context,
            dest_key=dest_key,
        )
        return dest_key

    def process(self, event: UploadEvent, context: ProcessingContext) -> List[str]:
        source = self.fetch(event, context)

        log_context = context.advance(MessageState.DECODING)
        image = to_rgb(self._codecs.decode(source.body))
        self._logger.debug(
            f"Decoded image {image.size[0]}x{image.size[1]}", log_context
        )

        log_context = context.advance(MessageState.TRANSFORMING)
        sizes = self._config.resize_sizes
        uploaded: Dict[str, str] = {}
        failures: Dict[str, str] = {}

        with ThreadPoolExecutor(
            max_workers=len(sizes),
            thread_name_prefix=f"resize-{extract_filename(event.key)}",
        ) as executor:
            future_to_size = {
                executor.submit(
                    self.resize_and_upload, image, size, event, log_context
                ): size
                for size in sizes
            }

            for future in as_completed(future_to_size):
                size = future_to_size[future]
                try:
                    uploaded[size.name] = future.result()
                except Exception as e:  # noqa: BLE001
                    failures[size.name] = f"{type(e).__name__}: {e}"
                    self._logger.error(
                        f"Resize task '{size.name}' failed: {e}", log_context
                    )

        if failures:
            raise ResizeError(event.key, failures)

        self._logger.info(
            f"All {len(sizes)} resize tasks completed", log_context
        )
        return [uploaded[size.name] for size in sizes]
