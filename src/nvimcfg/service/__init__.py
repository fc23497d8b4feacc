"""Service layer: config-tree discovery and the apply orchestrator."""

from nvimcfg.service.apply import ApplyOrchestrator, ApplyResult
from nvimcfg.service.workspace import discover, load_documents, read_document

__all__ = ["ApplyOrchestrator", "ApplyResult", "discover", "load_documents", "read_document"]
