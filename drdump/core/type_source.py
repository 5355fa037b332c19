"""
Type source — the "resolve type definitions by name" capability.

Responsibilities:
  - Define the TypeInfoSource protocol consumed by the enum extractor.
  - Describe named types as backend-neutral TypeDefinition records.
  - Provide StaticTypeSource, an in-memory source built from plain
    mappings (tests, pre-resolved tables).

Concrete metadata backends (see dwarf_source) turn their own encoding
into TypeDefinition objects; nothing downstream touches the encoding.
"""
from dataclasses import dataclass, field
from enum import Enum, unique
from typing import Iterable, List, Mapping, Protocol, Tuple, Union

from drdump.core.errors import MemberNameError


@unique
class TypeKind(str, Enum):
    ENUM = "ENUM"
    FWD = "FWD"              # forward declaration, no members
    STRUCT = "STRUCT"
    UNION = "UNION"
    TYPEDEF = "TYPEDEF"
    BASE = "BASE"


@dataclass(frozen=True)
class EnumMember:
    """A single enumerator, as declared in the metadata."""

    raw_name: Union[bytes, str, None]   # undecoded; resolved via the source
    value: int                          # declared value, possibly signed


@dataclass(frozen=True)
class TypeDefinition:
    """A named type found in the metadata."""

    name: str
    kind: TypeKind
    origin: str = "<memory>"            # file the definition came from
    members: Tuple[EnumMember, ...] = field(default_factory=tuple)


class TypeInfoSource(Protocol):
    """Anything able to look up type definitions by name."""

    def resolve_types_by_name(self, name: str) -> List[TypeDefinition]:
        """Return every definition named *name*, in source order.

        Raises MetadataLoadError when the underlying metadata cannot be read.
        """
        ...

    def resolve_name(self, member: EnumMember) -> str:
        """Return the decoded name of *member*.

        Raises MemberNameError when the name is missing or malformed.
        """
        ...


def decode_member_name(member: EnumMember) -> str:
    """Strictly decode an enumerator name; shared by all sources."""
    raw = member.raw_name
    if raw is None:
        raise MemberNameError(f"Enumerator with value {member.value} has no name")
    if isinstance(raw, bytes):
        try:
            raw = raw.decode("utf-8")
        except UnicodeDecodeError as e:
            raise MemberNameError(
                f"Enumerator with value {member.value} has a malformed name: {e}"
            ) from e
    if not raw:
        raise MemberNameError(f"Enumerator with value {member.value} has an empty name")
    return raw


class StaticTypeSource:
    """
    In-memory TypeInfoSource.

    Usage::

        source = StaticTypeSource.from_enums({
            "skb_drop_reason": {0: "NOT_SPECIFIED", 1: "NO_SOCKET"},
        })
    """

    def __init__(self, definitions: Iterable[TypeDefinition] = ()):
        self._definitions: List[TypeDefinition] = list(definitions)

    @classmethod
    def from_enums(
        cls,
        enums: Mapping[str, Mapping[int, str]],
        origin: str = "<memory>",
    ) -> "StaticTypeSource":
        """Build a source holding one ENUM definition per entry of *enums*."""
        definitions = [
            TypeDefinition(
                name=name,
                kind=TypeKind.ENUM,
                origin=origin,
                members=tuple(
                    EnumMember(raw_name=member, value=value)
                    for value, member in values.items()
                ),
            )
            for name, values in enums.items()
        ]
        return cls(definitions)

    def add(self, definition: TypeDefinition) -> "StaticTypeSource":
        self._definitions.append(definition)
        return self

    def resolve_types_by_name(self, name: str) -> List[TypeDefinition]:
        return [d for d in self._definitions if d.name == name]

    def resolve_name(self, member: EnumMember) -> str:
        return decode_member_name(member)
