# Worker modules
from django.utils.module_loading import import_string

from apps.daemons.exceptions import WorkerTypeNotAvailable
from apps.daemons.workers.base import BaseWorker, RunMode, WorkerConfig
from apps.daemons.workers.file_checker import FileChecker

__all__ = [
    "BaseWorker",
    "RunMode",
    "WorkerConfig",
    "FileChecker",
    "WORKER_REGISTRY",
    "get_available_workers",
    "get_worker_class",
]

# Registry of built-in workers
WORKER_REGISTRY: dict[str, type[BaseWorker]] = {
    "FileChecker": FileChecker,
}


def _configured_workers() -> dict[str, str]:
    from django.conf import settings

    return dict(getattr(settings, "DAEMON_WORKER_CLASSES", {}))


def get_available_workers() -> list[str]:
    """Names of every worker type that can be resolved."""
    return sorted(set(WORKER_REGISTRY) | set(_configured_workers()))


def get_worker_class(worker_type: str) -> type[BaseWorker]:
    """
    Resolve a worker type name to its class.

    Built-in workers are looked up first, then settings.DAEMON_WORKER_CLASSES
    (name to dotted path).

    Raises:
        WorkerTypeNotAvailable: If no class is registered under the name, or
            the configured path cannot be imported or is not a worker.
    """
    if worker_type in WORKER_REGISTRY:
        return WORKER_REGISTRY[worker_type]

    dotted_path = _configured_workers().get(worker_type)
    if not dotted_path:
        raise WorkerTypeNotAvailable(worker_type, get_available_workers())

    try:
        worker_class = import_string(dotted_path)
    except ImportError as exc:
        raise WorkerTypeNotAvailable(worker_type, get_available_workers()) from exc
    if not (isinstance(worker_class, type) and issubclass(worker_class, BaseWorker)):
        raise WorkerTypeNotAvailable(worker_type, get_available_workers())
    return worker_class
