"""Lambda entry points for the notifier and the three queue workers."""

from functools import lru_cache
from typing import Any, Dict

from .core.factories import WorkerFactory
from .core.logging_config import get_logger
from .core.models import PipelineConfig
from .core.observability import MetricsCollector
from .workers import BaseWorker, UploadNotifier


@lru_cache(maxsize=1)
def get_factory() -> WorkerFactory:
    """Factory built once per runtime from PIXEL_* environment variables."""
    return WorkerFactory(
        PipelineConfig.from_env(), metrics_collector=MetricsCollector()
    )


@lru_cache(maxsize=None)
def get_notifier() -> UploadNotifier:
    return get_factory().create_notifier()


@lru_cache(maxsize=None)
def get_worker(name: str) -> BaseWorker:
    return get_factory().create_worker(name)


def run_worker(name: str, event: Dict[str, Any]) -> Dict[str, Any]:
    """
    Handle one queue batch and log the invocation's metrics summary.

    Metrics are cleared afterwards so a warm runtime reports per invocation.
    """
    collector = get_factory().metrics_collector
    try:
        return get_worker(name).handle_event(event)
    finally:
        if collector is not None:
            summary = collector.get_summary(name)
            if summary:
                get_logger("handlers").info(f"{name} batch metrics: {summary}")
            collector.clear_metrics()


def notifier_handler(event: Dict[str, Any], context: Any = None) -> Dict[str, Any]:
    return get_notifier().handle_event(event)


def metadata_handler(event: Dict[str, Any], context: Any = None) -> Dict[str, Any]:
    return run_worker("metadata", event)


def converter_handler(event: Dict[str, Any], context: Any = None) -> Dict[str, Any]:
    return run_worker("converter", event)


def resizer_handler(event: Dict[str, Any], context: Any = None) -> Dict[str, Any]:
    return run_worker("resizer", event)
