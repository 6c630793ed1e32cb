"""Content loading and validation utilities.

This package provides:
- SchemaRegistry: discovers and exposes bundled JSON Schemas.
- DataLoader: JSON/YAML loading with $include support and JSON Schema validation.
- load_content: builds the item catalog and room registry from documents.
"""

from .content import Content, load_content
from .loader import DataLoader, DataValidationError, SchemaRegistry

__all__ = [
    "Content",
    "DataLoader",
    "DataValidationError",
    "SchemaRegistry",
    "load_content",
]
