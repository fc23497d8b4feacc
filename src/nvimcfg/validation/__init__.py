"""Multi-stage validation: syntax, semantic, dependency and runtime path."""

from nvimcfg.validation.pipeline import Document, PathResolver, Stage, ValidationPipeline
from nvimcfg.validation.runtime import RuntimePathResolver, default_roots

__all__ = [
    "Document",
    "PathResolver",
    "RuntimePathResolver",
    "Stage",
    "ValidationPipeline",
    "default_roots",
]
