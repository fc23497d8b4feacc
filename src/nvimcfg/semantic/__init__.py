"""Semantic layer: entity extraction, metadata catalog and semantic checks."""

from nvimcfg.semantic.catalog import CatalogError, MetadataProvider, load_catalog
from nvimcfg.semantic.extractor import ConfigExtractor, extract, literal_value
from nvimcfg.semantic.validator import SemanticValidator

__all__ = [
    "CatalogError",
    "ConfigExtractor",
    "MetadataProvider",
    "SemanticValidator",
    "extract",
    "literal_value",
    "load_catalog",
]
