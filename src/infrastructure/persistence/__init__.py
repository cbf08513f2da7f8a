"""JSON file persistence with versioned upgrades."""

from src.infrastructure.persistence.custom_code_repository import JsonCustomCodeRepository
from src.infrastructure.persistence.queue_documents import (
    QUEUE_VERSION,
    QueueDocuments,
    document_to_state,
    state_to_document,
)
from src.infrastructure.persistence.queue_state_repository import JsonQueueStateRepository
from src.infrastructure.persistence.versioning import (
    CommitResult,
    LoadResult,
    SchemaVersion,
    UpgradeResult,
    VersionChain,
    commit_load_result,
    run_hooks,
)
from src.infrastructure.persistence.writer import DocumentWriter

__all__: list[str] = [
    "QUEUE_VERSION",
    "CommitResult",
    "DocumentWriter",
    "JsonCustomCodeRepository",
    "JsonQueueStateRepository",
    "LoadResult",
    "QueueDocuments",
    "SchemaVersion",
    "UpgradeResult",
    "VersionChain",
    "commit_load_result",
    "document_to_state",
    "run_hooks",
    "state_to_document",
]
