"""
Formatter — render drop reasons for humans.

Known values are printed by name; unknown values as "Unknown reason N".
Sub-system annotation is opt-in (verbose) for known values and always
attempted for unknown ones, as it is the only hint left for those.
"""
from dataclasses import dataclass
from typing import List, Mapping, Optional

SUBSYS_SHIFT = 16


@dataclass(frozen=True)
class ResolvedCode:
    """A raw drop-reason value looked up against resolved tables."""

    code: int
    reasons: Mapping[int, str]
    subsystems: Optional[Mapping[int, str]] = None

    @property
    def known(self) -> bool:
        return self.code in self.reasons

    @property
    def subsystem(self) -> Optional[str]:
        if self.subsystems is None:
            return None
        return self.subsystems.get(self.code >> SUBSYS_SHIFT)

    def render(self, verbose: bool = False) -> str:
        if self.known:
            base = self.reasons[self.code]
        else:
            base = f"Unknown reason {self.code}"
            verbose = True

        if verbose:
            subsystem = self.subsystem
            if subsystem is not None:
                return f"{base} (sub-system: {subsystem})"
        return base


def render_one(
    code: int,
    reasons: Mapping[int, str],
    subsystems: Optional[Mapping[int, str]] = None,
    verbose: bool = False,
) -> str:
    """Render a single drop-reason value."""
    return ResolvedCode(code, reasons, subsystems).render(verbose)


def render_raw(
    reasons: Mapping[int, str],
    subsystems: Optional[Mapping[int, str]] = None,
    verbose: bool = False,
) -> List[str]:
    """One "<value> = <name>" line per known value, ascending, aligned."""
    if not reasons:
        return []

    width = len(str(max(reasons)))
    return [
        f"{code:{width}} = {render_one(code, reasons, subsystems, verbose)}"
        for code in sorted(reasons)
    ]
