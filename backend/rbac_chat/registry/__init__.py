"""
Schema registry: roles, resources, actions and context dimensions.
"""

from rbac_chat.registry.schema_registry import (
    SchemaRegistry,
    get_schema_registry,
    load_schema_file,
)
