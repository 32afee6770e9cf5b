"""
Response envelope classification.

The Xero APIs wrap their resources in several different top-level
structures depending on the sub-API and its age:

    A  new format, single resource with a metadata header
    B  new format, resource list with a header and pagination
       (also the files API {"Items": [...], "TotalCount": n})
    C  old format, resource list with a header and a Status field
       (a single logical resource still arrives as a one-item list)
    E  naked list of resources, no header
    F  naked single resource, no header
    G  simple error message {"message": ..., "httpStatusCode": ...}
    H  new format error with a "problem" detail

ResponseEnvelope works out which one it has been given, pulls the
resource (or resources) out, and keeps pagination, problem details and
the remaining header fields apart as metadata. Unrecognised shapes give
an empty envelope rather than an exception.
"""

import logging
from enum import Enum
from typing import Any, Dict, Iterator, List, Optional, Tuple, Union

import requests

from ..api.parsers import parse_response
from .resource import EmptyNode, Node, Resource, ResourceCollection

logger = logging.getLogger(__name__)

FIELD_PROVIDER_NAME = "providername"
FIELD_STATUS = "status"
FIELD_HTTP_STATUS_CODE = "httpstatuscode"
FIELD_PAGINATION = "pagination"
FIELD_PROBLEM = "problem"
FIELD_MESSAGE = "message"
FIELD_ITEMS = "items"
FIELD_TOTAL_COUNT = "totalcount"


class StructureType(str, Enum):
    """Top-level response structure."""

    EMPTY = "empty"
    SINGLE_WITH_HEADER = "A"
    LIST_WITH_HEADER = "B"
    OLD_FORMAT_LIST = "C"
    NAKED_LIST = "E"
    NAKED_RESOURCE = "F"
    ERROR_MESSAGE = "G"
    ERROR_DETAIL = "H"


ERROR_STRUCTURES = (StructureType.ERROR_MESSAGE, StructureType.ERROR_DETAIL)


class ResponseEnvelope:
    """
    A classified top-level API response.

    Attributes:
        structure: StructureType tag
        resource: Resource, ResourceCollection or EmptyNode
        pagination: Pagination details (empty Resource if none)
        problem: Error problem detail (empty Resource if none)
        metadata: Remaining top-level fields
    """

    def __init__(self, data: Union[Dict[str, Any], List[Any], None] = None):
        """
        Classify a decoded response body.

        Args:
            data: Decoded JSON (or converted XML) body
        """
        self._source = data if data is not None else {}
        self._index: Dict[str, str] = {}
        if isinstance(self._source, dict):
            self._index = {str(key).lower(): key for key in self._source}

        self.structure, self.resource, claimed = self._classify()

        self.pagination = self._claim_resource(FIELD_PAGINATION)
        self.problem = self._claim_resource(FIELD_PROBLEM)

        metadata: Dict[str, Any] = {}
        if isinstance(self._source, dict) and self.structure != StructureType.NAKED_RESOURCE:
            excluded = {FIELD_PAGINATION, FIELD_PROBLEM}
            if claimed is not None:
                excluded.add(claimed.lower())
            metadata = {
                key: value
                for key, value in self._source.items()
                if str(key).lower() not in excluded
            }
        self.metadata = Resource(metadata, "metadata")

        logger.debug(
            f"Classified response as {self.structure.name} "
            f"({len(self)} resource(s))"
        )

    @classmethod
    def from_response(cls, response: requests.Response) -> "ResponseEnvelope":
        """Decode and classify an HTTP response."""
        return cls(parse_response(response))

    # Source field helpers

    def has_source_field(self, name: str) -> bool:
        """True if the top-level field was supplied (any letter case)."""
        return name.lower() in self._index

    def get_source_field(self, name: str, default: Any = None) -> Any:
        """The raw top-level field value, or default if not supplied."""
        key = self._index.get(name.lower())
        if key is None:
            return default
        return self._source[key]

    @property
    def source(self) -> Union[Dict[str, Any], List[Any]]:
        return self._source

    # Classification

    def _claim_resource(self, lc_name: str) -> Resource:
        value = self.get_source_field(lc_name)
        if isinstance(value, dict):
            return Resource(value, self._index[lc_name])
        return Resource({}, lc_name)

    def _find_resource_field(self) -> Optional[str]:
        """The first top-level field, other than pagination/problem, holding a map or list."""
        for lc_name, key in self._index.items():
            if lc_name in (FIELD_PAGINATION, FIELD_PROBLEM):
                continue
            if isinstance(self._source[key], (dict, list)):
                return key
        return None

    def _classify(self) -> Tuple[StructureType, Node, Optional[str]]:
        data = self._source

        if not data:
            return StructureType.EMPTY, EmptyNode("resource"), None

        if isinstance(data, list):
            return StructureType.NAKED_LIST, ResourceCollection(data), None

        if not isinstance(data, dict):
            logger.warning(f"Unclassifiable response body of type {type(data).__name__}")
            return StructureType.EMPTY, EmptyNode("resource"), None

        has_provider = self.has_source_field(FIELD_PROVIDER_NAME)
        has_status = self.has_source_field(FIELD_STATUS)

        # Without a provider header, "status" is an ordinary resource field.
        if has_provider:
            if self.get_source_field(FIELD_PROBLEM):
                return StructureType.ERROR_DETAIL, EmptyNode("resource"), None

            key = self._find_resource_field()

            if has_status:
                # Old format: always a collection, even for one resource.
                if key is None:
                    return StructureType.OLD_FORMAT_LIST, EmptyNode("resource"), None
                value = data[key]
                if isinstance(value, dict):
                    value = [value]
                return StructureType.OLD_FORMAT_LIST, ResourceCollection(value, key), key

            if key is None and self.has_source_field(FIELD_MESSAGE):
                return StructureType.ERROR_MESSAGE, EmptyNode("resource"), None

            if self.get_source_field(FIELD_PAGINATION) is None:
                structure = StructureType.SINGLE_WITH_HEADER
            else:
                structure = StructureType.LIST_WITH_HEADER

            if key is None:
                return structure, EmptyNode("resource"), None
            return structure, self._build(data[key], key), key

        if self.has_source_field(FIELD_ITEMS) and self.has_source_field(FIELD_TOTAL_COUNT):
            key = self._index[FIELD_ITEMS]
            return StructureType.LIST_WITH_HEADER, self._build(data[key] or [], key), key

        if self.has_source_field(FIELD_MESSAGE):
            return StructureType.ERROR_MESSAGE, EmptyNode("resource"), None

        return StructureType.NAKED_RESOURCE, Resource(data), None

    @staticmethod
    def _build(value: Any, name: str) -> Node:
        if isinstance(value, list):
            return ResourceCollection(value, name)
        return Resource(value, name)

    # Accessors

    def is_empty(self) -> bool:
        """True if no resource (or collection) was found."""
        return isinstance(self.resource, EmptyNode)

    def is_collection(self) -> bool:
        return isinstance(self.resource, ResourceCollection)

    def is_resource(self) -> bool:
        """True only for a single resource; a one-item collection is a collection."""
        return isinstance(self.resource, Resource)

    def is_error(self) -> bool:
        return self.structure in ERROR_STRUCTURES

    @property
    def message(self) -> Optional[str]:
        """Error message text, if this is an error envelope."""
        message = self.get_source_field(FIELD_MESSAGE)
        if message is None and self.problem:
            message = self.problem.get("detail", "") or self.problem.get("title", "") or None
        return message

    def first(self) -> Any:
        """The single resource, the first of a collection, or EmptyNode."""
        return self.resource.first()

    get_resource = first

    def get_collection(self) -> ResourceCollection:
        """The resources as a collection, whatever the envelope held."""
        if isinstance(self.resource, ResourceCollection):
            return self.resource
        if isinstance(self.resource, Resource):
            return ResourceCollection.of(self.resource, name=self.resource.name)
        return ResourceCollection([], "resource")

    def count(self) -> int:
        return len(self)

    def __len__(self) -> int:
        return len(self.resource)

    def __iter__(self) -> Iterator[Any]:
        return iter(self.get_collection())

    def to_dict(self) -> Dict[str, Any]:
        """Export the classified parts as plain data."""
        if isinstance(self.resource, ResourceCollection):
            resource: Any = self.resource.to_list()
        elif isinstance(self.resource, Resource):
            resource = self.resource.to_dict()
        else:
            resource = None

        return {
            "structure": self.structure.value,
            "resource": resource,
            "pagination": self.pagination.to_dict(),
            "problem": self.problem.to_dict(),
            "metadata": self.metadata.to_dict(),
        }

    def __repr__(self) -> str:
        return f"ResponseEnvelope(structure={self.structure.name}, count={len(self)})"
