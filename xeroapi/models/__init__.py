"""Response models: the resource tree and the envelope classifier."""

from .envelope import ResponseEnvelope, StructureType
from .resource import EmptyNode, Node, Resource, ResourceCollection, build_node

__all__ = [
    "ResponseEnvelope",
    "StructureType",
    "Node",
    "EmptyNode",
    "Resource",
    "ResourceCollection",
    "build_node",
]
