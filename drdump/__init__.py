"""
drdump — resolve skb drop reasons from kernel type-debug metadata.

Dumps the kernel's drop-reason enumerations, translates raw drop-reason
values into their symbolic names and generates bpftrace / SystemTap
monitoring scripts.
"""

__version__ = "0.1.0"
PACKAGE_NAME = "drdump"
