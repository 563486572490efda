"""Metadata worker - records image dimensions and object attributes."""

from typing import List, Optional

from ..core.codecs import CodecRegistry
from ..core.error_handling import retry_storage_operation, with_error_handling
from ..core.image_utils import build_metadata, extract_filename
from ..core.models import MessageState, MetadataRecord, PipelineConfig, UploadEvent
from ..core.observability import MetricsCollector
from ..core.protocols import BlobStoreProtocol, KeyValueStoreProtocol, LoggerProtocol
from .common import BaseWorker, ProcessingContext
from .dead_letter import DeadLetterQueue


@retry_storage_operation()
@with_error_handling
def put_metadata_record(table: KeyValueStoreProtocol, record: MetadataRecord) -> None:
    """Write the record, replacing any previous record with the same name."""
    table.put_item(Item=record.to_item())


class MetadataWorker(BaseWorker):
    """Extracts header metadata and stores one record per derived name."""

    name = "metadata"

    def __init__(
        self,
        blob_store: BlobStoreProtocol,
        table: KeyValueStoreProtocol,
        logger: LoggerProtocol,
        config: Optional[PipelineConfig] = None,
        codecs: Optional[CodecRegistry] = None,
        dead_letter: Optional[DeadLetterQueue] = None,
        metrics_collector: Optional[MetricsCollector] = None,
    ):
        super().__init__(
            blob_store, logger, config, codecs, dead_letter, metrics_collector
        )
        self._table = table

    def extract(self, event: UploadEvent, context: ProcessingContext) -> MetadataRecord:
        source = self.fetch(event, context)

        log_context = context.advance(MessageState.DECODING)
        header = self._codecs.probe(source.body)
        self._logger.debug(
            f"Decoded {header.format} header: {header.width}x{header.height}",
            log_context,
        )

        context.advance(MessageState.TRANSFORMING)
        return MetadataRecord(
            name=extract_filename(event.key),
            bucket=event.bucket,
            metadata=build_metadata(
                header,
                key=event.key,
                file_size=len(source.body),
                last_modified=source.last_modified,
            ),
        )

    def process(self, event: UploadEvent, context: ProcessingContext) -> List[str]:
        record = self.extract(event, context)

        log_context = context.advance(MessageState.UPLOADING)
        put_metadata_record(self._table, record)
        self._logger.info(f"Stored metadata record '{record.name}'", log_context)
        return [record.name]
