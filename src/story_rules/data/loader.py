from __future__ import annotations

import json
import logging
import os
from dataclasses import dataclass
from functools import lru_cache
from importlib import resources
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple

import yaml
from jsonschema import Draft7Validator, ValidationError

from ..exceptions import ContentError, StoryRulesError

logger = logging.getLogger(__name__)

YAML_SUFFIXES = (".yaml", ".yml")


class DataValidationError(StoryRulesError):
    """Raised when a content document fails schema validation."""

    def __init__(self, message: str, errors: Optional[List[ValidationError]] = None):
        super().__init__(message)
        self.errors = errors or []

    def to_human(self) -> str:
        parts = [str(self)]
        for e in self.errors:
            path = "/".join(str(p) for p in e.path) or "<root>"
            parts.append(f" - at {path}: {e.message}")
        return "\n".join(parts)


@dataclass(frozen=True)
class SchemaInfo:
    name: str
    uri: str
    schema: Dict[str, Any]


class SchemaRegistry:
    """Registry for bundled JSON Schemas.

    Discovers schemas from the package resource directory 'story_rules.data.schemas'.
    A schema's "name" is its filename without the ".schema.json" suffix; it can
    also be looked up by its "$id".
    """

    _PKG = "story_rules.data.schemas"

    def __init__(self) -> None:
        self._schemas_by_name: Dict[str, SchemaInfo] = {}
        self._schemas_by_uri: Dict[str, SchemaInfo] = {}
        self._load_all()

    def _load_all(self) -> None:
        schema_dir = resources.files(self._PKG)
        for entry in schema_dir.iterdir():
            if not entry.name.endswith(".schema.json"):
                continue
            name = entry.name[: -len(".schema.json")]
            with entry.open("rb") as fh:
                schema = json.load(fh)
            uri = schema.get("$id") or f"resource://{self._PKG}/{entry.name}"
            info = SchemaInfo(name=name, uri=uri, schema=schema)
            self._schemas_by_name[name] = info
            self._schemas_by_uri[uri] = info
            logger.debug("Registered schema '%s' (uri=%s)", name, uri)

    def get(self, name_or_uri: str) -> Optional[SchemaInfo]:
        return self._schemas_by_name.get(name_or_uri) or self._schemas_by_uri.get(name_or_uri)

    def names(self) -> List[str]:
        return sorted(self._schemas_by_name.keys())

    def make_validator(self, name_or_uri: str) -> Draft7Validator:
        info = self.get(name_or_uri)
        if not info:
            raise KeyError(f"Schema not found: {name_or_uri}")
        return Draft7Validator(info.schema)


class DataLoader:
    """Load JSON/YAML content with optional $include expansion and schema validation.

    - Parsed files are cached by absolute path
    - {"$include": "other.yaml"} is replaced by the included document; with
      sibling keys the two are deep-merged, siblings winning
    - inside a list, an included list is spliced in place
    - a document declaring "$schema": "items" (or "rooms") is validated
    """

    def __init__(self, schema_registry: Optional[SchemaRegistry] = None) -> None:
        self.schemas = schema_registry or SchemaRegistry()
        self._cache: Dict[Path, Any] = {}

    def clear_cache(self) -> None:
        self._cache.clear()

    def load(self, path: os.PathLike | str, *, validate: bool = True, schema: Optional[str] = None) -> Any:
        """Load a content file, resolve includes, and optionally validate.

        Raises:
            DataValidationError: if validation fails
            ContentError: if the file cannot be parsed or includes form a cycle
            FileNotFoundError: if the file does not exist
        """
        abs_path = Path(path).resolve()
        logger.debug("Loading content: %s", abs_path)
        data = self._read_and_expand(abs_path)

        if validate:
            schema_name = schema or (isinstance(data, dict) and data.get("$schema"))
            if schema_name:
                self.validate_data(data, schema_name)
            else:
                logger.debug("No schema specified for %s; skipping validation", abs_path)
        return data

    def validate_data(self, data: Any, schema_name_or_uri: str) -> None:
        try:
            validator = self.schemas.make_validator(schema_name_or_uri)
        except KeyError as e:
            raise DataValidationError(f"Unknown schema: {schema_name_or_uri}") from e

        errors = sorted(validator.iter_errors(data), key=lambda e: list(e.path))
        if errors:
            message = f"Validation failed for schema '{schema_name_or_uri}'"
            raise DataValidationError(message, errors)

    def _parse(self, path: Path) -> Any:
        try:
            if path.suffix.lower() in YAML_SUFFIXES:
                with path.open("r", encoding="utf-8") as fh:
                    return yaml.safe_load(fh)
            with path.open("rb") as fh:
                return json.load(fh)
        except (yaml.YAMLError, json.JSONDecodeError) as e:
            raise ContentError(f"Cannot parse {path}: {e}") from e

    def _read_and_expand(self, path: Path, _stack: Optional[Tuple[Path, ...]] = None) -> Any:
        if path in self._cache:
            return self._cache[path]

        if not path.exists():
            raise FileNotFoundError(path)

        data = self._parse(path)
        expanded = self._expand_includes(data, base_dir=path.parent, _stack=_stack or (path,))
        self._cache[path] = expanded
        return expanded

    def _expand_includes(self, node: Any, *, base_dir: Path, _stack: Tuple[Path, ...]) -> Any:
        def _load_include(target: str) -> Any:
            inc_path = (base_dir / target).resolve()
            if inc_path in _stack:
                cycle = " -> ".join(str(p) for p in _stack + (inc_path,))
                raise ContentError(f"Cyclic $include detected: {cycle}")
            return self._read_and_expand(inc_path, _stack=_stack + (inc_path,))

        if isinstance(node, dict):
            if "$include" in node:
                included = _load_include(str(node["$include"]))
                if len(node) == 1:
                    return included
                if not isinstance(included, dict):
                    raise ContentError("Cannot merge $include with non-object content")
                merged = self._deep_merge(included, {k: v for k, v in node.items() if k != "$include"})
                return {k: self._expand_includes(v, base_dir=base_dir, _stack=_stack) for k, v in merged.items()}
            return {k: self._expand_includes(v, base_dir=base_dir, _stack=_stack) for k, v in node.items()}
        if isinstance(node, list):
            result = []
            for item in node:
                if isinstance(item, dict) and "$include" in item and len(item) == 1:
                    included = _load_include(str(item["$include"]))
                    if isinstance(included, list):
                        result.extend(included)
                    else:
                        result.append(included)
                else:
                    result.append(self._expand_includes(item, base_dir=base_dir, _stack=_stack))
            return result
        return node

    @staticmethod
    def _deep_merge(base: Any, override: Any) -> Any:
        if isinstance(base, dict) and isinstance(override, dict):
            out = dict(base)
            for k, v in override.items():
                if k in out:
                    out[k] = DataLoader._deep_merge(out[k], v)
                else:
                    out[k] = v
            return out
        return override


@lru_cache(maxsize=1)
def default_loader() -> DataLoader:
    return DataLoader()
