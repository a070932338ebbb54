"""Resource registry exposed by the admin routes."""
from adminrest.resources.registry import (
    Enrichment,
    RelationshipTarget,
    Resource,
    ResourceRegistry,
    load_registry,
)

__all__ = [
    "Enrichment",
    "RelationshipTarget",
    "Resource",
    "ResourceRegistry",
    "load_registry",
]
