"""
Consent permissions requested from the user on the ESIA page.
"""

import base64
import json
from dataclasses import dataclass, field
from typing import Any, Dict, List, Sequence


@dataclass
class Permission:
    """One consent type with its actions, purposes and scopes"""
    sysname: str  # Consent type mnemonic
    actions: List[str] = field(default_factory=list)
    purposes: List[str] = field(default_factory=list)
    scopes: List[str] = field(default_factory=list)
    responsible_object: str = ""  # Organization name
    expire: int = 0  # Consent lifetime in minutes

    def to_dict(self) -> Dict[str, Any]:
        result: Dict[str, Any] = {}
        if self.responsible_object:
            result["responsibleObject"] = self.responsible_object
        result["sysname"] = self.sysname
        if self.expire:
            result["expire"] = self.expire
        result["actions"] = [{"sysname": s} for s in self.actions]
        result["purposes"] = [{"sysname": s} for s in self.purposes]
        result["scopes"] = [{"sysname": s} for s in self.scopes]
        return result


def encode_permissions(permissions: Sequence[Permission]) -> str:
    """JSON-encode permissions as unpadded base64url, the form ESIA expects."""
    data = json.dumps(
        [p.to_dict() for p in permissions],
        separators=(",", ":"),
        ensure_ascii=False,
    ).encode("utf-8")
    return base64.urlsafe_b64encode(data).rstrip(b"=").decode("ascii")
