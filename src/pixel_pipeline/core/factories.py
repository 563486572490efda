"""Factory classes for creating configured worker instances."""

from typing import TYPE_CHECKING, Any, Optional

import boto3

from .codecs import CodecRegistry, default_registry
from .models import PipelineConfig
from .observability import MetricsCollector, StructuredLogger
from .protocols import LoggerProtocol
from ..workers.common import BaseWorker
from ..workers.converter import ConverterWorker
from ..workers.dead_letter import DeadLetterQueue
from ..workers.metadata import MetadataWorker
from ..workers.notifier import UploadNotifier
from ..workers.resizer import ResizerWorker

if TYPE_CHECKING:
    from mypy_boto3_dynamodb.service_resource import Table
    from mypy_boto3_s3.client import S3Client
    from mypy_boto3_sns.client import SNSClient
    from mypy_boto3_sqs.client import SQSClient


class LoggerFactory:
    """Factory for creating logger instances."""

    @staticmethod
    def create_logger(name: str, debug: bool = False) -> LoggerProtocol:
        """Create a structured logger; debug forces DEBUG level."""
        return StructuredLogger(name, level="DEBUG" if debug else None)


class ClientFactory:
    """Factory for boto3 clients backing the collaborator protocols."""

    def __init__(self, session: Optional[boto3.Session] = None, **client_kwargs: Any):
        self._session = session or boto3.Session()
        self._client_kwargs = client_kwargs

    def blob_store(self) -> "S3Client":
        return self._session.client("s3", **self._client_kwargs)

    def topic(self) -> "SNSClient":
        return self._session.client("sns", **self._client_kwargs)

    def queue(self) -> "SQSClient":
        return self._session.client("sqs", **self._client_kwargs)

    def table(self, name: str) -> "Table":
        dynamodb = self._session.resource("dynamodb", **self._client_kwargs)
        return dynamodb.Table(name)


class WorkerFactory:
    """Wires the notifier and workers from a config and collaborator clients."""

    def __init__(
        self,
        config: PipelineConfig,
        clients: Optional[ClientFactory] = None,
        codecs: Optional[CodecRegistry] = None,
        metrics_collector: Optional[MetricsCollector] = None,
    ):
        self._config = config
        self._clients = clients or ClientFactory()
        self._codecs = codecs or default_registry()
        self._metrics_collector = metrics_collector

    @property
    def metrics_collector(self) -> Optional[MetricsCollector]:
        return self._metrics_collector

    def _logger(self, name: str) -> LoggerProtocol:
        return LoggerFactory.create_logger(
            f"pixel-pipeline.{name}", debug=self._config.debug
        )

    def _dead_letter(self, logger: LoggerProtocol) -> Optional[DeadLetterQueue]:
        if not self._config.dead_letter_queue_url:
            return None
        return DeadLetterQueue(
            self._clients.queue(), self._config.dead_letter_queue_url, logger
        )

    def create_notifier(self) -> UploadNotifier:
        return UploadNotifier(
            self._clients.topic(), self._config, self._logger("notifier")
        )

    def create_metadata_worker(self) -> MetadataWorker:
        logger = self._logger("metadata")
        return MetadataWorker(
            self._clients.blob_store(),
            self._clients.table(self._config.metadata_table),
            logger,
            config=self._config,
            codecs=self._codecs,
            dead_letter=self._dead_letter(logger),
            metrics_collector=self._metrics_collector,
        )

    def create_converter_worker(self) -> ConverterWorker:
        logger = self._logger("converter")
        return ConverterWorker(
            self._clients.blob_store(),
            logger,
            config=self._config,
            codecs=self._codecs,
            dead_letter=self._dead_letter(logger),
            metrics_collector=self._metrics_collector,
        )

    def create_resizer_worker(self) -> ResizerWorker:
        logger = self._logger("resizer")
        return ResizerWorker(
            self._clients.blob_store(),
            logger,
            config=self._config,
            codecs=self._codecs,
            dead_letter=self._dead_letter(logger),
            metrics_collector=self._metrics_collector,
        )

    def create_worker(self, name: str) -> BaseWorker:
        creators = {
            "metadata": self.create_metadata_worker,
            "converter": self.create_converter_worker,
            "resizer": self.create_resizer_worker,
        }
        if name not in creators:
            raise ValueError(f"Unknown worker: {name}")
        return creators[name]()
