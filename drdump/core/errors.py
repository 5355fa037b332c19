"""
Errors — fatal conditions raised while resolving drop reasons.

Missing optional enumerations and unknown codes are not errors; they are
represented as ``None`` and as an "Unknown reason" label respectively.
"""


class DrdumpError(Exception):
    """Base class for every fatal drdump error."""


class MetadataLoadError(DrdumpError):
    """The type-debug metadata could not be opened or parsed."""


class DropReasonsUnsupported(DrdumpError):
    """The core drop-reason enumeration does not exist in the metadata."""

    def __init__(self, enum_name: str):
        self.enum_name = enum_name
        super().__init__(
            f"Drop reasons are not supported by this kernel "
            f"(enum {enum_name} not found)"
        )


class MemberNameError(DrdumpError):
    """An enumeration member name could not be resolved from the metadata."""
