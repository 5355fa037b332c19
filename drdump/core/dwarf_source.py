"""
DWARF source — TypeInfoSource backed by ELF/DWARF debug info.

Responsibilities:
  - Open every ELF file under a directory (or a single ELF file) and
    obtain its DWARFInfo handle through pyelftools.
  - Index the named type DIEs at CU scope by name, in sorted-path then
    CU order, as TypeDefinition records (enum members included).

Each file is read once and closed before the next one is opened, so a
debug tree with thousands of modules never holds more than one handle.
Files without DWARF info are skipped; a path holding no DWARF at all is
a load error.
"""
import logging
from pathlib import Path
from typing import Dict, Iterator, List, Optional, Set, Tuple

from elftools.common.exceptions import DWARFError, ELFError, ELFParseError
from elftools.dwarf.die import DIE
from elftools.elf.elffile import ELFFile

from drdump.core.errors import MetadataLoadError
from drdump.core.type_source import (
    EnumMember,
    TypeDefinition,
    TypeKind,
    decode_member_name,
)

logger = logging.getLogger(__name__)

_PARSE_ERRORS = (ELFError, ELFParseError, DWARFError)

_TAG_KINDS: Dict[str, TypeKind] = {
    "DW_TAG_enumeration_type": TypeKind.ENUM,
    "DW_TAG_structure_type": TypeKind.STRUCT,
    "DW_TAG_union_type": TypeKind.UNION,
    "DW_TAG_typedef": TypeKind.TYPEDEF,
    "DW_TAG_base_type": TypeKind.BASE,
}


def _decode_attr(die: DIE, attr_name: str) -> Optional[str]:
    """Decode a string attribute from a DIE, returning None if absent."""
    if attr_name not in die.attributes:
        return None
    raw = die.attributes[attr_name].value
    if isinstance(raw, bytes):
        return raw.decode("utf-8", errors="replace")
    return str(raw)


def _die_kind(die: DIE) -> TypeKind:
    # A declaration-only DIE carries no members, same as a forward decl.
    if "DW_AT_declaration" in die.attributes and die.attributes["DW_AT_declaration"].value:
        return TypeKind.FWD
    return _TAG_KINDS[die.tag]


def _enum_members(die: DIE) -> Iterator[EnumMember]:
    for child in die.iter_children():
        if child.tag != "DW_TAG_enumerator":
            continue
        attrs = child.attributes
        raw_name = attrs["DW_AT_name"].value if "DW_AT_name" in attrs else None
        if "DW_AT_const_value" not in attrs:
            raise DWARFError(f"enumerator at {child.offset:#x} has no DW_AT_const_value")
        yield EnumMember(raw_name=raw_name, value=attrs["DW_AT_const_value"].value)


def _iter_elf_paths(root: Path) -> Iterator[Path]:
    if root.is_file():
        yield root
        return
    for path in sorted(root.rglob("*")):
        if path.is_file():
            yield path


class DwarfTypeSource:
    """
    Index of the named types found in a set of ELF files.

    Usage::

        with DwarfTypeSource("/usr/lib/debug/lib/modules/6.8.0") as source:
            defs = source.resolve_types_by_name("skb_drop_reason")

    Loading happens on entry; no file handle outlives the load.
    """

    def __init__(self, path):
        self._path = Path(path)
        self._index: Dict[str, List[TypeDefinition]] = {}
        self._seen: Set[TypeDefinition] = set()
        self._loaded: List[str] = []

    # -- context manager -------------------------------------------------------

    def __enter__(self) -> "DwarfTypeSource":
        self._load()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self._index = {}
        self._seen = set()
        return False

    # -- loading ---------------------------------------------------------------

    def _load(self) -> None:
        if not self._path.exists():
            raise MetadataLoadError(f"Could not parse debug files: {self._path} does not exist")

        for path in _iter_elf_paths(self._path):
            try:
                self._load_file(path)
            except _PARSE_ERRORS as e:
                raise MetadataLoadError(f"Could not parse debug file {path}: {e}") from e
            except OSError as e:
                raise MetadataLoadError(f"Could not read debug file {path}: {e}") from e

        if not self._loaded:
            raise MetadataLoadError(f"Could not parse debug files: no DWARF info found in {self._path}")

        logger.debug(
            "Indexed %d type names from %d file(s) under %s",
            len(self._index), len(self._loaded), self._path,
        )

    def _load_file(self, path: Path) -> None:
        with open(path, "rb") as f:
            if f.read(4) != b"\x7fELF":
                raise MetadataLoadError(f"Could not parse debug file {path}: not an ELF file")
            f.seek(0)

            elffile = ELFFile(f)
            if not elffile.has_dwarf_info():
                logger.debug("Skipping %s: no DWARF info", path)
                return

            origin = str(path)
            dwarf = elffile.get_dwarf_info()
            for cu in dwarf.iter_CUs():
                for die in cu.get_top_DIE().iter_children():
                    if die.tag not in _TAG_KINDS:
                        continue
                    name = _decode_attr(die, "DW_AT_name")
                    if name is None:
                        continue
                    self._add(die, name, origin)

        self._loaded.append(origin)
        logger.debug("Loaded DWARF info from %s", path)

    def _add(self, die: DIE, name: str, origin: str) -> None:
        kind = _die_kind(die)
        members: Tuple[EnumMember, ...] = ()
        if kind == TypeKind.ENUM:
            members = tuple(_enum_members(die))
        definition = TypeDefinition(name=name, kind=kind, origin=origin, members=members)

        # Headers repeat the same type in every CU including them.
        if definition in self._seen:
            return
        self._seen.add(definition)
        self._index.setdefault(name, []).append(definition)

    # -- TypeInfoSource --------------------------------------------------------

    @property
    def loaded_files(self) -> Tuple[str, ...]:
        return tuple(self._loaded)

    def resolve_types_by_name(self, name: str) -> List[TypeDefinition]:
        return list(self._index.get(name, []))

    def resolve_name(self, member: EnumMember) -> str:
        return decode_member_name(member)
