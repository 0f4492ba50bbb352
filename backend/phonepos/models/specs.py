# Overview: Category-specific specification variants stored in CatalogItem.specifications.

"""
Catalog specifications are persisted as a JSON object but handled in code as
one of two variants, chosen by whether the item's category is serialized:

- PhoneSpecs: storage / color / display (known keys, all strings)
- GenericSpecs: free-form attribute map for accessories, cases, chargers...

Unknown keys on a phone are rejected so a typo never silently disappears.
"""
from __future__ import annotations

from dataclasses import dataclass, field

from ..validation import ValidationError


@dataclass(frozen=True)
class PhoneSpecs:
    kind = "phone"
    storage: str = ""
    color: str = ""
    display: str = ""

    @classmethod
    def from_dict(cls, data: dict) -> "PhoneSpecs":
        allowed = {"storage", "color", "display"}
        unknown = sorted(set(data) - allowed)
        if unknown:
            raise ValidationError(f"Unknown phone specification fields: {', '.join(unknown)}")
        values = {}
        for key in allowed:
            raw = data.get(key)
            if raw is not None and not isinstance(raw, (str, int, float)):
                raise ValidationError(f"specifications.{key} must be a string")
            values[key] = "" if raw is None else str(raw).strip()
        return cls(**values)

    def to_dict(self) -> dict:
        return {"storage": self.storage, "color": self.color, "display": self.display}


@dataclass(frozen=True)
class GenericSpecs:
    kind = "generic"
    attributes: dict = field(default_factory=dict)

    @classmethod
    def from_dict(cls, data: dict) -> "GenericSpecs":
        attributes = {}
        for key, raw in data.items():
            if isinstance(raw, (dict, list)):
                raise ValidationError(f"specifications.{key} must be a scalar value")
            attributes[str(key)] = raw
        return cls(attributes=attributes)

    def to_dict(self) -> dict:
        return dict(self.attributes)


def parse_specs(data: dict | None, *, serialized: bool) -> PhoneSpecs | GenericSpecs:
    if data is None:
        data = {}
    if not isinstance(data, dict):
        raise ValidationError("specifications must be an object")
    if serialized:
        return PhoneSpecs.from_dict(data)
    return GenericSpecs.from_dict(data)
