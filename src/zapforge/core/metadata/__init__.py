"""Domain metadata: the cluster/attribute library loaded from a properties file."""

from zapforge.core.metadata.loader import (
    AttributeDefinition,
    ClusterDefinition,
    load_metadata,
)
from zapforge.core.metadata.properties import parse_properties

__all__ = [
    "AttributeDefinition",
    "ClusterDefinition",
    "load_metadata",
    "parse_properties",
]
