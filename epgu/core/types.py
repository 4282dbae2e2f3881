"""
Request and response types of the EPGU API.
"""

import json
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional

from ..errors import JSONUnmarshalError


@dataclass
class OrderMeta:
    """Order metadata sent with order creation and archive pushes"""
    region: str  # OKATO code of the user location
    service_code: str  # Service code
    target_code: str  # Service target code

    def to_json(self) -> bytes:
        return json.dumps({
            "region": self.region,
            "serviceCode": self.service_code,
            "targetCode": self.target_code,
        }, ensure_ascii=False).encode("utf-8")


@dataclass
class OrderInfo:
    """Order status returned by the status and cancel endpoints"""
    code: str
    message: str = ""
    message_id: str = ""
    order: Optional[Dict[str, Any]] = None  # Order details once the order reached the agency

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "OrderInfo":
        """
        Build from the API response. The ``order`` field arrives as a string
        holding escaped JSON and is decoded here.
        """
        order = data.get("order")
        if isinstance(order, str):
            if order:
                try:
                    order = json.loads(order)
                except ValueError as e:
                    raise JSONUnmarshalError(e) from e
            else:
                order = None
        return cls(
            code=data.get("code") or "",
            message=data.get("message") or "",
            message_id=data.get("messageId") or "",
            order=order,
        )


@dataclass
class AttachmentFile:
    """File downloaded from the order storage"""
    filename: str
    content_type: str
    data: bytes


class DictFilter(str, Enum):
    """Dictionary tree filtering mode"""
    ONE_LEVEL = "ONELEVEL"  # flat dictionary
    SUB_TREE = "SUBTREE"  # hierarchical dictionary

    def __str__(self) -> str:
        return self.value


@dataclass
class DictionaryItem:
    value: str
    title: str = ""
    parent_value: str = ""
    is_leaf: bool = False
    children: List[Dict[str, Any]] = field(default_factory=list)
    attributes: List[Dict[str, Any]] = field(default_factory=list)
    attribute_values: Dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "DictionaryItem":
        return cls(
            value=data.get("value") or "",
            title=data.get("title") or "",
            parent_value=data.get("parentValue") or "",
            is_leaf=bool(data.get("isLeaf")),
            children=data.get("children") or [],
            attributes=data.get("attributes") or [],
            attribute_values=data.get("attributeValues") or {},
        )


@dataclass
class Dictionary:
    """Dictionary page returned by the reference-data endpoint"""
    total: int = 0
    items: List[DictionaryItem] = field(default_factory=list)
    field_errors: List[Dict[str, Any]] = field(default_factory=list)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Dictionary":
        """
        Raises:
            JSONUnmarshalError: If ``total``, ``items`` or ``fieldErrors``
                have an unexpected shape
        """
        items = data.get("items") or []
        field_errors = data.get("fieldErrors") or []
        if not isinstance(items, list) or not all(isinstance(item, dict) for item in items):
            raise JSONUnmarshalError(TypeError("dictionary items must be a list of objects"))
        if not isinstance(field_errors, list):
            raise JSONUnmarshalError(TypeError("dictionary fieldErrors must be a list"))
        try:
            total = int(data.get("total") or 0)
        except (TypeError, ValueError) as e:
            raise JSONUnmarshalError(e) from e

        return cls(
            total=total,
            items=[DictionaryItem.from_dict(item) for item in items],
            field_errors=field_errors,
        )
