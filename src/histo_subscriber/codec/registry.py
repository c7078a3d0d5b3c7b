"""
Type Registry
=============

Known encoded class names and the type family each belongs to.

A decoder configured for one class accepts every class of the same
family (a "TH1F" decoder also reads "TH1D" and "TH1I"); any other
class name, known or not, is a type mismatch.

Only the "TH1" family can be materialised as a Histogram.
"""

from dataclasses import dataclass
from typing import Dict, Optional


HISTOGRAM_1D_FAMILY = "TH1"

DECODABLE_FAMILIES = frozenset({HISTOGRAM_1D_FAMILY})


@dataclass(frozen=True, slots=True)
class TypeTag:
    """
    Encoded class identity.

    Attributes:
        name: Class name as written in the stream (e.g. "TH1F")
        family: Type family the class belongs to (e.g. "TH1")
    """

    name: str
    family: str

    @property
    def decodable(self) -> bool:
        return self.family in DECODABLE_FAMILIES

    def accepts(self, other: "TypeTag") -> bool:
        """Whether an object of `other` type satisfies this expected type."""
        return self.family == other.family


_REGISTRY: Dict[str, TypeTag] = {}


def register_type(name: str, family: str) -> TypeTag:
    """
    Register a class name under a type family.

    Re-registering a name with the same family is a no-op; moving it to
    another family raises ValueError.
    """
    if not name or not family:
        raise ValueError("name and family must be non-empty")

    existing = _REGISTRY.get(name)
    if existing is not None:
        if existing.family != family:
            raise ValueError(
                f"{name} is already registered in family {existing.family}"
            )
        return existing

    tag = TypeTag(name=name, family=family)
    _REGISTRY[name] = tag
    return tag


def lookup_type(name: str) -> Optional[TypeTag]:
    """Registered TypeTag for `name`, or None."""
    return _REGISTRY.get(name)


def resolve_type(name: str) -> TypeTag:
    """
    Registered TypeTag for `name`.

    Raises:
        ValueError: If the class name is unknown
    """
    tag = _REGISTRY.get(name)
    if tag is None:
        known = ", ".join(sorted(_REGISTRY))
        raise ValueError(f"Unknown object type {name!r} (known: {known})")
    return tag


for _name in ("TH1C", "TH1S", "TH1I", "TH1F", "TH1D"):
    register_type(_name, HISTOGRAM_1D_FAMILY)
for _name in ("TH2C", "TH2S", "TH2I", "TH2F", "TH2D"):
    register_type(_name, "TH2")
register_type("TProfile", "TProfile")
