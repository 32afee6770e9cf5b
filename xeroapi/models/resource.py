"""
Schema-less resource tree for decoded API response bodies.

Every JSON value becomes one of:

- a plain Python scalar (str, int, float, bool), with date-like fields
  converted to UTC datetimes
- Resource: a record with case-insensitive field lookup
- ResourceCollection: an ordered list of resources or scalars
- EmptyNode: the placeholder returned for absent or null fields

Field access never raises for a missing field, so callers can navigate
without existence checks:

    invoice.Contact.Addresses.first().City

All coercion happens once, when the tree is built. Nodes are read-only.
"""

from typing import Any, Dict, Iterator, List, Optional, Union

from ..utils.date_utils import is_date_field, to_datetime


class Node:
    """Base class for all tree nodes."""

    __slots__ = ("_name", "_parent", "_raw")

    def __init__(self, raw: Any, name: Optional[str] = None, parent: Optional["Node"] = None):
        object.__setattr__(self, "_raw", raw)
        object.__setattr__(self, "_name", name)
        object.__setattr__(self, "_parent", parent)

    def __setattr__(self, name: str, value: Any) -> None:
        raise AttributeError(f"{type(self).__name__} is read-only")

    def __delattr__(self, name: str) -> None:
        raise AttributeError(f"{type(self).__name__} is read-only")

    @property
    def name(self) -> Optional[str]:
        """Name of the field this node came from, if any."""
        return self._name

    @property
    def parent(self) -> Optional["Node"]:
        """The containing node, or None at the root."""
        return self._parent

    @property
    def raw(self) -> Any:
        """The undecoded source value."""
        return self._raw

    def has_parent(self) -> bool:
        return self._parent is not None

    def is_empty(self) -> bool:
        return not self._raw

    def is_collection(self) -> bool:
        return False

    def is_resource(self) -> bool:
        return False

    def count(self) -> int:
        return len(self)

    def __len__(self) -> int:
        raise NotImplementedError

    def __bool__(self) -> bool:
        return not self.is_empty()


class EmptyNode(Node):
    """
    Placeholder for a field that is absent or explicitly null.

    Any field or index lookup on an EmptyNode yields another EmptyNode.
    It is falsy, has no items and converts to an empty string.
    """

    __slots__ = ()

    def __init__(self, name: Optional[str] = None, parent: Optional[Node] = None):
        super().__init__(None, name, parent)

    def is_empty(self) -> bool:
        return True

    def get(self, name: str, default: Any = None) -> Any:
        return default if default is not None else EmptyNode(name, self)

    def __getattr__(self, name: str) -> "EmptyNode":
        if name.startswith("_"):
            raise AttributeError(name)
        return EmptyNode(name, self)

    def __getitem__(self, key: Union[str, int]) -> "EmptyNode":
        return EmptyNode(key if isinstance(key, str) else None, self)

    def __contains__(self, name: object) -> bool:
        return False

    def __len__(self) -> int:
        return 0

    def __iter__(self) -> Iterator[Any]:
        return iter(())

    def first(self) -> "EmptyNode":
        return self

    def to_dict(self) -> Dict[str, Any]:
        return {}

    def to_list(self) -> List[Any]:
        return []

    def __str__(self) -> str:
        return ""

    def __repr__(self) -> str:
        return f"EmptyNode(name={self._name!r})"

    def __eq__(self, other: object) -> bool:
        return isinstance(other, EmptyNode)

    def __hash__(self) -> int:
        return hash(EmptyNode)


def build_node(value: Any, name: Optional[str] = None, parent: Optional[Node] = None) -> Any:
    """
    Convert one decoded JSON value into its tree form.

    Args:
        value: Decoded value
        name: Field name the value was found under (drives date coercion)
        parent: Containing node

    Returns:
        Resource, ResourceCollection, None, or a (possibly coerced) scalar
    """
    if isinstance(value, dict):
        return Resource(value, name, parent)

    if isinstance(value, list):
        return ResourceCollection(value, name, parent)

    if value is not None and is_date_field(name):
        return to_datetime(value)

    return value


class Resource(Node):
    """
    A single record, navigable by case-insensitive field name.

    Fields can be read as attributes (resource.InvoiceID), as items
    (resource["invoiceid"]) or through get(). Absent or null fields give
    an EmptyNode unless a default is passed to get().

    Attribute access only reaches fields whose name does not collide with
    a node member (name, raw, parent, get, keys, items, count, first, ...):
    contact.name is the node's own name, not the "Name" field. Use item
    access or get() for those fields.
    """

    __slots__ = ("_fields", "_index")

    def __init__(
        self,
        data: Optional[Dict[str, Any]] = None,
        name: Optional[str] = None,
        parent: Optional[Node] = None,
    ):
        data = data or {}
        super().__init__(data, name, parent)

        fields: Dict[str, Any] = {}
        index: Dict[str, str] = {}
        for field_name, value in data.items():
            field_name = str(field_name)
            index[field_name.lower()] = field_name
            fields[field_name] = build_node(value, field_name, self)

        object.__setattr__(self, "_fields", fields)
        object.__setattr__(self, "_index", index)

    def is_resource(self) -> bool:
        return True

    def has(self, name: str) -> bool:
        """True if the field is present with a non-null, non-empty value."""
        value = self._fields.get(self._index.get(name.lower(), ""))
        if value is None:
            return False
        if isinstance(value, Node) and value.is_empty():
            return False
        return True

    def get(self, name: str, default: Any = None) -> Any:
        """
        Get a field value.

        Args:
            name: Field name in any letter case
            default: Returned for absent or null fields instead of EmptyNode

        Returns:
            The field value, a nested node, default or EmptyNode
        """
        key = self._index.get(name.lower())
        value = self._fields.get(key) if key is not None else None

        if value is None:
            return default if default is not None else EmptyNode(name, self)

        return value

    def get_raw(self, name: str, default: Any = None) -> Any:
        """The undecoded source value of a field."""
        key = self._index.get(name.lower())
        if key is None:
            return default
        return self._raw[key]

    def __getattr__(self, name: str) -> Any:
        if name.startswith("_"):
            raise AttributeError(name)
        return self.get(name)

    def __getitem__(self, name: str) -> Any:
        return self.get(name)

    def __contains__(self, name: object) -> bool:
        return isinstance(name, str) and self.has(name)

    def keys(self) -> List[str]:
        return list(self._fields)

    def items(self) -> List[tuple]:
        return list(self._fields.items())

    def __len__(self) -> int:
        # A resource counts as one item, or none when empty.
        return 1 if self._fields else 0

    def __iter__(self) -> Iterator["Resource"]:
        if self._fields:
            yield self

    def first(self) -> "Resource":
        return self

    def to_dict(self) -> Dict[str, Any]:
        """Recursively export the (coerced) fields as plain dicts and lists."""
        return {name: _export(value) for name, value in self._fields.items()}

    def __str__(self) -> str:
        return "" if self.is_empty() else str(self.to_dict())

    def __repr__(self) -> str:
        return f"Resource(name={self._name!r}, fields={self.keys()!r})"


class ResourceCollection(Node):
    """
    An ordered sequence of resources (or scalars, for lists of primitives).

    Nested lists become nested collections; null entries become EmptyNode.
    """

    __slots__ = ("_items",)

    def __init__(
        self,
        data: Optional[List[Any]] = None,
        name: Optional[str] = None,
        parent: Optional[Node] = None,
    ):
        data = data or []
        super().__init__(data, name, parent)

        items = []
        for value in data:
            item = build_node(value, None, self)
            items.append(EmptyNode(None, self) if item is None else item)

        object.__setattr__(self, "_items", tuple(items))

    @classmethod
    def of(cls, *resources: Resource, name: Optional[str] = None) -> "ResourceCollection":
        """Collection view over resources that have already been built."""
        collection = cls([resource.raw for resource in resources], name=name)
        object.__setattr__(collection, "_items", tuple(resources))
        return collection

    def is_collection(self) -> bool:
        return True

    def __len__(self) -> int:
        return len(self._items)

    def __iter__(self) -> Iterator[Any]:
        return iter(self._items)

    def __getitem__(self, index: Union[int, slice]) -> Any:
        if isinstance(index, slice):
            return list(self._items[index])
        try:
            return self._items[index]
        except IndexError:
            return EmptyNode(None, self)

    def __getattr__(self, name: str) -> EmptyNode:
        # Collections have no named fields.
        if name.startswith("_"):
            raise AttributeError(name)
        return EmptyNode(name, self)

    def get(self, name: str, default: Any = None) -> Any:
        return default if default is not None else EmptyNode(name, self)

    def first(self) -> Any:
        """The first item, or EmptyNode for an empty collection."""
        return self._items[0] if self._items else EmptyNode(None, self)

    def to_list(self) -> List[Any]:
        """Recursively export the items as plain dicts and lists."""
        return [_export(item) for item in self._items]

    def __str__(self) -> str:
        return "" if self.is_empty() else str(self.to_list())

    def __repr__(self) -> str:
        return f"ResourceCollection(name={self._name!r}, count={len(self)})"


def _export(value: Any) -> Any:
    if isinstance(value, Resource):
        return value.to_dict()
    if isinstance(value, ResourceCollection):
        return value.to_list()
    if isinstance(value, EmptyNode):
        return None
    return value
