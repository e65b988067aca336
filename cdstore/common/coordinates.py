"""Component coordinates and the canonical key every definition store is keyed by."""
from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, Mapping, Optional, Union

NAMESPACE_PLACEHOLDER = "-"

# Provider-specific casing rules (bit flags).
NAMESPACE = 0x4
NAME = 0x2
REVISION = 0x1

LOWER_CASE_RULES: Dict[str, int] = {
    "github": NAMESPACE | NAME,
    "pypi": NAME,
}


def _normalize(value: Optional[str], provider: Optional[str], prop: int) -> Optional[str]:
    if not value:
        return value
    mask = LOWER_CASE_RULES.get(provider or "", 0)
    return value.lower() if mask & prop else value


@dataclass
class EntityCoordinates:
    type: Optional[str] = None
    provider: Optional[str] = None
    namespace: Optional[str] = None
    name: Optional[str] = None
    revision: Optional[str] = None

    def __post_init__(self) -> None:
        self.type = self.type.lower() if self.type else None
        self.provider = self.provider.lower() if self.provider else None
        if not self.namespace or self.namespace == NAMESPACE_PLACEHOLDER:
            self.namespace = None
        else:
            self.namespace = _normalize(self.namespace, self.provider, NAMESPACE)
        self.name = _normalize(self.name, self.provider, NAME) or None
        self.revision = _normalize(self.revision, self.provider, REVISION) or None

    @classmethod
    def from_object(cls, value: CoordinatesLike) -> Optional[EntityCoordinates]:
        if not value:
            return None
        if isinstance(value, EntityCoordinates):
            return value
        if isinstance(value, str):
            return cls.from_string(value)
        if isinstance(value, Mapping):
            return cls(
                type=value.get("type"),
                provider=value.get("provider"),
                namespace=value.get("namespace"),
                name=value.get("name"),
                revision=value.get("revision"),
            )
        return cls(
            type=getattr(value, "type", None),
            provider=getattr(value, "provider", None),
            namespace=getattr(value, "namespace", None),
            name=getattr(value, "name", None),
            revision=getattr(value, "revision", None),
        )

    @classmethod
    def from_string(cls, path: Optional[str]) -> Optional[EntityCoordinates]:
        """Parse ``type/provider/namespace/name/revision`` (trailing parts optional)."""
        if not path or not isinstance(path, str):
            return None
        if path.startswith("/"):
            path = path[1:]
        parts = path.split("/")
        parts += [None] * (5 - len(parts))
        return cls(*parts[:5])

    @classmethod
    def from_urn(cls, urn: Optional[str]) -> Optional[EntityCoordinates]:
        """Parse ``scheme:type:provider:namespace:name:rev:revision``."""
        if not urn:
            return None
        parts = urn.split(":")
        parts += [None] * (7 - len(parts))
        _, type_, provider, namespace, name, _, revision = parts[:7]
        return cls(type_, provider, namespace, name, revision)

    def to_string(self) -> str:
        # a namespace only exists once there is a provider
        namespace = (self.namespace or NAMESPACE_PLACEHOLDER) if self.provider else None
        segments = [self.type, self.provider, namespace, self.name, self.revision]
        return "/".join(s for s in segments if s)

    def __str__(self) -> str:
        return self.to_string()

    def canonical_key(self) -> str:
        return self.to_string().lower()

    def as_revisionless(self) -> EntityCoordinates:
        return EntityCoordinates(self.type, self.provider, self.namespace, self.name)

    def to_dict(self) -> Dict[str, str]:
        return {
            key: value
            for key, value in (
                ("type", self.type),
                ("provider", self.provider),
                ("namespace", self.namespace),
                ("name", self.name),
                ("revision", self.revision),
            )
            if value
        }


CoordinatesLike = Union[EntityCoordinates, Mapping[str, Any], str, None]


def canonical_key(coordinates: CoordinatesLike) -> str:
    """Lower-cased slash-joined key; empty string when there are no coordinates."""
    parsed = EntityCoordinates.from_object(coordinates)
    if parsed is None:
        return ""
    return parsed.canonical_key()
