"""
Reason table — merge core and sub-system drop reasons into one table.

Responsibilities:
  - Extract the core drop-reason enum; its absence means the kernel does
    not support drop reasons at all.
  - Drop the sub-system mask pseudo-value from the core table.
  - Merge each known extension enum, in profile order, without ever
    overwriting a value that is already present.
  - Extract the sub-system enum used to annotate unknown values, and flag
    kernels exposing more sub-systems than the profile knows of.
"""
import logging
from dataclasses import dataclass, field
from typing import Optional, Tuple

from drdump.core.enum_extractor import EnumTable, extract_enum
from drdump.core.errors import DropReasonsUnsupported
from drdump.core.type_source import TypeInfoSource
from drdump.policy.profile import Profile

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ReasonTables:
    """Everything resolved from one metadata snapshot."""

    reasons: EnumTable
    subsystems: Optional[EnumTable] = None
    unhandled_subsystems: bool = False
    extensions_found: Tuple[str, ...] = field(default_factory=tuple)


def merge_reasons(core: EnumTable, *extensions: Optional[EnumTable]) -> EnumTable:
    """
    Merge extension tables into a copy of *core*, first writer wins.

    Some sub-systems reuse generic core values (e.g. SKB_CONSUMED); those
    must keep their core name.  ``None`` extensions are skipped.
    """
    merged = dict(core)
    for extension in extensions:
        if extension is None:
            continue
        for value, name in sorted(extension.items()):
            merged.setdefault(value, name)
    return merged


def build_reason_tables(
    source: TypeInfoSource,
    profile: Profile | None = None,
) -> ReasonTables:
    """
    Build the drop-reason and sub-system tables from *source*.

    Raises
    ------
    DropReasonsUnsupported
        If the core drop-reason enum is not defined.
    MetadataLoadError, MemberNameError
        Propagated from the extractor.
    """
    if profile is None:
        profile = Profile.v0()

    # ── Step 1: core reasons (mandatory) ─────────────────────────────
    core = extract_enum(source, profile.core_enum)
    if core is None:
        raise DropReasonsUnsupported(profile.core_enum)

    core.pop(profile.subsys_mask, None)

    # ── Step 2: non-core reasons, in precedence order ────────────────
    extensions = []
    found = []
    for enum_name in profile.extension_enums:
        table = extract_enum(source, enum_name)
        if table is None:
            logger.debug("%s not found, skipping", enum_name)
            continue
        extensions.append(table)
        found.append(enum_name)

    reasons = merge_reasons(core, *extensions)
    reasons.pop(profile.subsys_mask, None)

    # ── Step 3: sub-systems (best effort) ────────────────────────────
    subsystems = extract_enum(source, profile.subsys_enum)
    unhandled = subsystems is not None and len(subsystems) > profile.known_subsys_count
    if unhandled:
        logger.info(
            "found more drop reasons than we know of. drdump will still be "
            "able to resolve raw values into a sub-system when using --resolve."
        )

    logger.debug(
        "Resolved %d drop reasons (%d from core, extensions: %s)",
        len(reasons), len(core), ", ".join(found) or "none",
    )

    return ReasonTables(
        reasons=reasons,
        subsystems=subsystems,
        unhandled_subsystems=unhandled,
        extensions_found=tuple(found),
    )
