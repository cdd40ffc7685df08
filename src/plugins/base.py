"""
Core plugin types and dataclasses.

This module contains the schema and state types shared by every resource
handler: field declarations, the resource schema, and ResourceData, which
carries desired state, observed state and identity through one
reconciliation pass.
"""

import copy
import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple

logger = logging.getLogger(__name__)


class FieldType(Enum):
    """Value types a resource field may hold."""

    STRING = "string"
    BOOL = "bool"
    MAP = "map"  # str -> str

    def zero(self) -> Any:
        if self is FieldType.STRING:
            return ""
        if self is FieldType.BOOL:
            return False
        return {}


@dataclass
class Field:
    """Declaration of one resource field."""

    name: str
    type: FieldType
    required: bool = False
    optional: bool = False
    computed: bool = False
    force_new: bool = False
    default: Any = None
    allowed_values: Optional[List[str]] = None
    description: str = ""

    @property
    def read_only(self) -> bool:
        """Computed and not settable by the operator."""
        return self.computed and not (self.required or self.optional)

    def zero(self) -> Any:
        if self.default is not None:
            return copy.deepcopy(self.default)
        return self.type.zero()


@dataclass
class ResourceSchema:
    """The set of fields a resource type exposes."""

    fields: List[Field] = field(default_factory=list)

    def __post_init__(self):
        self._by_name = {f.name: f for f in self.fields}

    def get_field(self, name: str) -> Field:
        try:
            return self._by_name[name]
        except KeyError:
            raise KeyError(f"Unknown field: {name}")

    def has_field(self, name: str) -> bool:
        return name in self._by_name

    @property
    def settable_fields(self) -> List[Field]:
        return [f for f in self.fields if not f.read_only]

    @property
    def force_new_fields(self) -> List[str]:
        return [f.name for f in self.fields if f.force_new]

    def to_json_schema(self) -> Dict[str, Any]:
        """Render the operator-settable fields as a Draft 7 JSON Schema."""
        type_map = {
            FieldType.STRING: {"type": "string"},
            FieldType.BOOL: {"type": "boolean"},
            FieldType.MAP: {
                "type": "object",
                "additionalProperties": {"type": "string"},
            },
        }
        properties: Dict[str, Any] = {}
        for f in self.settable_fields:
            prop = dict(type_map[f.type])
            if f.allowed_values:
                prop["enum"] = list(f.allowed_values)
            if f.description:
                prop["description"] = f.description
            properties[f.name] = prop

        return {
            "type": "object",
            "required": [f.name for f in self.fields if f.required],
            "properties": properties,
            "additionalProperties": False,
        }


def _is_zero(value: Any) -> bool:
    return value is None or value == "" or value is False or value == {}


class ResourceData:
    """
    State of one resource during a reconciliation pass.

    Holds three things:
      - desired: what the operator declared (copied, never mutated)
      - previous: the desired state that was last applied, if any
      - observed: what the last read returned, filled in by handlers

    plus the resource identity, which is "" while the resource is absent.
    """

    def __init__(
        self,
        schema: ResourceSchema,
        desired: Optional[Dict[str, Any]] = None,
        previous: Optional[Dict[str, Any]] = None,
        identity: str = "",
        observed: Optional[Dict[str, Any]] = None,
    ):
        self.schema = schema
        self.desired: Dict[str, Any] = copy.deepcopy(desired or {})
        self.previous: Dict[str, Any] = copy.deepcopy(previous or {})
        self.observed: Dict[str, Any] = copy.deepcopy(observed or {})
        self._id = identity or ""

    @property
    def id(self) -> str:
        return self._id

    @property
    def exists(self) -> bool:
        return bool(self._id)

    def set_id(self, identity: str) -> None:
        """Assign the identity; an empty string marks the resource absent."""
        self._id = identity or ""
        if not self._id:
            self.observed = {}

    def get(self, key: str) -> Any:
        """
        Get the effective value of a field.

        Read-only fields come from observed state. Settable fields come from
        desired state; when left unset, computed ones fall back to observed
        state and the rest to their zero value.
        """
        f = self.schema.get_field(key)
        if f.read_only:
            return self.observed.get(key, f.zero())
        if key in self.desired:
            return self.desired[key]
        if f.computed and key in self.observed:
            return self.observed[key]
        return f.zero()

    def get_ok(self, key: str) -> Tuple[Any, bool]:
        """
        Get a desired value and whether it was explicitly set.

        Zero values ("", False, {}) count as not set, so absent optional
        fields are left out of API requests rather than sent as defaults.
        """
        self.schema.get_field(key)
        value = self.desired.get(key)
        if _is_zero(value):
            return self.get(key), False
        return value, True

    def has_change(self, key: str) -> bool:
        """
        Whether the desired value differs from the last applied one.

        Removing a non-computed field from desired state counts as changing
        it to its zero value; unset computed fields never change.
        """
        f = self.schema.get_field(key)
        if key in self.desired:
            new = self.desired[key]
        elif f.computed:
            return False
        else:
            new = f.zero()

        if key in self.previous:
            old = self.previous[key]
        else:
            old = self.observed.get(key)

        if _is_zero(old) and _is_zero(new):
            return False
        return old != new

    def set(self, key: str, value: Any) -> None:
        """Record an observed value."""
        self.schema.get_field(key)
        self.observed[key] = copy.deepcopy(value)

    @property
    def state(self) -> Dict[str, Any]:
        """A copy of the observed state."""
        return copy.deepcopy(self.observed)

    def desired_from_observed(self) -> Dict[str, Any]:
        """Operator-settable fields of the observed state, used on import."""
        return {
            f.name: copy.deepcopy(self.observed[f.name])
            for f in self.schema.settable_fields
            if f.name in self.observed
        }
