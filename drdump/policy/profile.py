"""
Profile — kernel drop-reason layout descriptor.

The profile encapsulates every kernel-specific constant so that core
extraction logic contains no opinions.  Supporting a new sub-system that
registers its own drop reasons is a profile change, not a code change.
"""
from dataclasses import dataclass
from typing import Tuple


@dataclass(frozen=True)
class Profile:
    """Names and constants describing how a kernel exposes drop reasons."""

    # Identity
    profile_id: str

    # Mandatory enum; its absence means the kernel has no drop reasons.
    core_enum: str

    # Optional per-subsystem enums.  Order is precedence: earlier entries
    # win over later ones for colliding values.
    extension_enums: Tuple[str, ...]

    # Enum listing the sub-systems able to register drop reasons.
    subsys_enum: str

    # Number of sub-systems known to this profile (core included).  Keep in
    # sync with SKB_DROP_REASON_SUBSYS_NUM in include/net/dropreason.h.
    known_subsys_count: int = 5

    # SKB_DROP_REASON_SUBSYS_MASK, never a drop reason on its own.
    subsys_mask: int = 0xFFFF0000

    @classmethod
    def v0(cls) -> "Profile":
        """The default profile for upstream Linux kernels."""
        return cls(
            profile_id="linux-skb-drop-reason-v0",
            core_enum="skb_drop_reason",
            extension_enums=("mac80211_drop_reason", "ovs_drop_reason"),
            subsys_enum="skb_drop_reason_subsys",
            known_subsys_count=5,
            subsys_mask=0xFFFF0000,
        )
