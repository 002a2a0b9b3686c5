import json
import logging
import os
from typing import Optional

import yaml

from rbac_chat.config import REGISTRY_PATH, SCHEMA_VERSION, STORAGE_DIR
from rbac_chat.errors import RegistryError
from rbac_chat.ir.schema import Schema

logger = logging.getLogger(__name__)

CACHE_FILENAME = "schema_cache.json"


def load_schema_file(path: str) -> Schema:
    """Read a registry YAML file into a Schema."""
    if not os.path.exists(path):
        raise RegistryError(f"Registry file not found: {path}")

    try:
        with open(path, "r", encoding="utf-8") as f:
            data = yaml.safe_load(f) or {}
    except yaml.YAMLError as e:
        raise RegistryError(f"Registry file is not valid YAML: {path}") from e

    if not isinstance(data, dict) or not data.get("roles"):
        raise RegistryError(f"Registry file has no roles: {path}")

    try:
        return Schema.from_dict(data)
    except (KeyError, TypeError) as e:
        raise RegistryError(f"Registry file is malformed: {path}") from e


class SchemaRegistry:
    """
    Discovers the schema and keeps a versioned disk cache of it.

    The cache is reused while its version equals ``schema_version``;
    any mismatch (or unreadable cache) triggers a full rediscovery.
    """

    def __init__(
        self,
        registry_path: str = REGISTRY_PATH,
        cache_dir: Optional[str] = STORAGE_DIR,
        schema_version: str = SCHEMA_VERSION,
    ):
        self.registry_path = registry_path
        self.cache_dir = cache_dir
        self.schema_version = schema_version
        self._schema: Optional[Schema] = None

    @property
    def cache_path(self) -> Optional[str]:
        if not self.cache_dir:
            return None
        return os.path.join(self.cache_dir, CACHE_FILENAME)

    def get_schema(self) -> Schema:
        if self._schema is None:
            self._schema = self._load()
        return self._schema

    def refresh(self) -> Schema:
        """Drop the cached schema and rediscover it."""
        self._schema = self._discover()
        return self._schema

    # ----------------------------
    # Internals
    # ----------------------------

    def _load(self) -> Schema:
        cached = self._read_cache()
        if cached is not None:
            if cached.version == self.schema_version:
                logger.info("Loading schema from disk cache (version %s)", cached.version)
                return cached
            logger.info(
                "Schema cache version mismatch (%s != %s), refreshing",
                cached.version,
                self.schema_version,
            )
        return self._discover()

    def _discover(self) -> Schema:
        logger.info("Discovering schema from %s", self.registry_path)
        schema = load_schema_file(self.registry_path)
        schema.version = self.schema_version
        self._write_cache(schema)
        return schema

    def _read_cache(self) -> Optional[Schema]:
        path = self.cache_path
        if not path or not os.path.exists(path):
            return None
        try:
            with open(path, "r", encoding="utf-8") as f:
                return Schema.from_dict(json.load(f))
        except (OSError, ValueError, KeyError, TypeError) as e:
            logger.warning("Schema cache unreadable, rediscovering: %s", e)
            return None

    def _write_cache(self, schema: Schema) -> None:
        path = self.cache_path
        if not path:
            return
        try:
            os.makedirs(self.cache_dir, exist_ok=True)
            with open(path, "w", encoding="utf-8") as f:
                json.dump(schema.to_dict(), f, indent=2)
        except OSError as e:
            # Cache is an optimization only
            logger.warning("Could not write schema cache %s: %s", path, e)


_registry: Optional[SchemaRegistry] = None


def get_schema_registry() -> SchemaRegistry:
    global _registry
    if _registry is None:
        _registry = SchemaRegistry()
    return _registry
