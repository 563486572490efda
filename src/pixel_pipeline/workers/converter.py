"""Converter worker - normalizes every source image to JPEG."""

from typing import List

from ..core.image_utils import converted_key
from ..core.models import MessageState, UploadEvent
from .common import BaseWorker, ProcessingContext, upload_jpeg


class ConverterWorker(BaseWorker):
    """Decodes the source image and writes it back as converted/{name}.jpg."""

    name = "converter"

    def process(self, event: UploadEvent, context: ProcessingContext) -> List[str]:
        source = self.fetch(event, context)

        log_context = context.advance(MessageState.DECODING)
        image = self._codecs.decode(source.body)
        self._logger.debug(
            f"Decoded image {image.size[0]}x{image.size[1]} ({image.mode})",
            log_context,
        )

        context.advance(MessageState.TRANSFORMING)
        jpeg_bytes = self._codecs.encode(image, "jpeg", self.encode_options)

        # Upload is the only side effect, attempted after a successful encode
        dest_key = converted_key(event.key, self._config.converted_prefix)
        log_context = context.advance(MessageState.UPLOADING)
        upload_jpeg(self._blob_store, event.bucket, dest_key, jpeg_bytes)
        self._logger.info(
            f"Uploaded s3://{event.bucket}/{dest_key}",
            log_context,
            size_bytes=len(jpeg_bytes),
        )
        return [dest_key]
