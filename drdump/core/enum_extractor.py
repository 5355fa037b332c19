"""
Enum extractor — turn a named enumeration into a value → name table.

Responsibilities:
  - Query a TypeInfoSource for every definition carrying a given name.
  - Pick the first definition of ENUM kind (forward declarations and
    same-named non-enum types are ignored).
  - Resolve member names and reinterpret member values as u32.
"""
import logging
from typing import Dict, Optional

from drdump.core.type_source import TypeInfoSource, TypeKind

logger = logging.getLogger(__name__)

EnumTable = Dict[int, str]

U32_MASK = 0xFFFFFFFF


def to_u32(value: int) -> int:
    """Reinterpret a declared (possibly negative) enum value as u32.

    Two's-complement truncation: -1 → 0xFFFFFFFF, -65536 → 0xFFFF0000.
    Values wider than 32 bits keep their low 32 bits.
    """
    return value & U32_MASK


def extract_enum(source: TypeInfoSource, type_name: str) -> Optional[EnumTable]:
    """
    Return the members of enum *type_name* as an ordered {value: name} dict.

    Returns
    -------
    dict or None
        None when no ENUM-kind definition named *type_name* exists.

    Raises
    ------
    MetadataLoadError
        If the source cannot be queried.
    MemberNameError
        If a member name cannot be resolved.
    """
    definitions = source.resolve_types_by_name(type_name)

    chosen = None
    for definition in definitions:
        if definition.kind == TypeKind.ENUM:
            chosen = definition
            break

    if chosen is None:
        if definitions:
            logger.debug(
                "%s: %d definition(s) found, none is an enum", type_name, len(definitions)
            )
        return None

    logger.debug(
        "%s: using enum from %s (%d candidate definition(s))",
        type_name, chosen.origin, len(definitions),
    )

    values: EnumTable = {}
    for member in chosen.members:
        values[to_u32(member.value)] = source.resolve_name(member)
    return values
