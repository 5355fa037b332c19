"""
Shared pytest fixtures for drdump tests.

Two kinds of metadata:
  - In-memory StaticTypeSource objects describing the drop-reason enums,
    for extractor / builder / formatter tests.
  - ELF binaries with DWARF info compiled on the fly with gcc, laid out
    like a kernel debug directory (a "vmlinux" plus a module).

Requirements for the DWARF fixtures:
  - gcc must be available and produce ELF binaries (Linux/WSL).

Those tests are skipped otherwise.
"""
import shutil
import subprocess
import tempfile
import textwrap
from pathlib import Path

import pytest

from drdump.core.type_source import StaticTypeSource

# Core drop reasons and the sub-system list, trimmed from
# include/net/dropreason-core.h and include/net/dropreason.h.
VMLINUX_C = textwrap.dedent("""\
    enum skb_drop_reason_subsys {
        SKB_DROP_REASON_SUBSYS_CORE,
        SKB_DROP_REASON_SUBSYS_MAC80211_UNUSABLE,
        SKB_DROP_REASON_SUBSYS_MAC80211_MONITOR,
        SKB_DROP_REASON_SUBSYS_OPENVSWITCH,
        SKB_DROP_REASON_SUBSYS_NUM
    };

    enum skb_drop_reason {
        SKB_NOT_DROPPED_YET = 0,
        SKB_CONSUMED,
        SKB_DROP_REASON_NOT_SPECIFIED,
        SKB_DROP_REASON_NO_SOCKET,
        SKB_DROP_REASON_PKT_TOO_SMALL,
        SKB_DROP_REASON_MAX,
        SKB_DROP_REASON_SUBSYS_MASK = 0xffff0000,
    };

    enum signed_values {
        NEG_ONE = -1,
        NEG_MASK = -65536,
        SEVEN = 7,
    };

    enum skb_drop_reason last_reason = SKB_CONSUMED;
    enum skb_drop_reason_subsys last_subsys = SKB_DROP_REASON_SUBSYS_CORE;
    enum signed_values last_signed = NEG_ONE;

    int main(void) {
        return (int)last_reason + (int)last_subsys + (int)last_signed;
    }
""")

# A module registering its own drop reasons.  RX_CONTINUE and RX_QUEUED
# reuse generic core values on purpose.
MAC80211_C = textwrap.dedent("""\
    enum mac80211_drop_reason {
        RX_CONTINUE = 0,
        RX_QUEUED = 1,
        RX_DROP_MONITOR = 2 << 16,
        RX_DROP_U_MIC_FAIL = (1 << 16) | 1,
    };

    enum mac80211_drop_reason last_rx = RX_QUEUED;

    int main(void) {
        return (int)last_rx;
    }
""")

# No drop-reason support at all, only a forward declaration of the enum.
OLD_KERNEL_C = textwrap.dedent("""\
    enum skb_drop_reason;

    struct sk_buff {
        enum skb_drop_reason *reason;
        int len;
    };

    struct sk_buff last_skb;

    int main(void) {
        return last_skb.len;
    }
""")


def _gcc_produces_elf() -> bool:
    """Test if gcc is present and produces ELF binaries."""
    if shutil.which("gcc") is None:
        return False

    with tempfile.TemporaryDirectory() as tmpdir:
        test_c = Path(tmpdir) / "test.c"
        test_out = Path(tmpdir) / "test_out"
        test_c.write_text("int main() { return 0; }")
        try:
            subprocess.run(
                ["gcc", str(test_c), "-o", str(test_out)],
                check=True,
                capture_output=True,
                timeout=10,
            )
        except (OSError, subprocess.SubprocessError):
            return False
        return test_out.exists() and test_out.read_bytes()[:4] == b"\x7fELF"


def _compile(source: str, output: Path, src_dir: Path) -> Path:
    """Compile C source to an ELF binary carrying DWARF type info."""
    src_file = src_dir / f"{output.name}.c"
    src_file.write_text(source)
    cmd = [
        "gcc",
        "-O0",
        "-g",
        "-std=gnu11",
        "-fno-eliminate-unused-debug-types",
        str(src_file),
        "-o", str(output),
    ]
    subprocess.run(cmd, check=True, capture_output=True, timeout=30)
    return output


@pytest.fixture(scope="session")
def gcc_ok():
    """Skip tests if gcc is not available or doesn't produce ELF binaries."""
    if not _gcc_produces_elf():
        pytest.skip("gcc producing ELF binaries is required for DWARF fixtures")


@pytest.fixture(scope="session")
def src_dir(tmp_path_factory, gcc_ok) -> Path:
    return tmp_path_factory.mktemp("drdump_src")


@pytest.fixture(scope="session")
def kernel_debug_dir(tmp_path_factory, src_dir) -> Path:
    """A debug directory with vmlinux and a mac80211 module."""
    d = tmp_path_factory.mktemp("kernel_debug")
    _compile(VMLINUX_C, d / "vmlinux", src_dir)
    (d / "kernel" / "net").mkdir(parents=True)
    _compile(MAC80211_C, d / "kernel" / "net" / "mac80211.ko.debug", src_dir)
    return d


@pytest.fixture(scope="session")
def vmlinux_only(tmp_path_factory, src_dir) -> Path:
    """A single ELF file with the core enums only."""
    d = tmp_path_factory.mktemp("vmlinux_only")
    return _compile(VMLINUX_C, d / "vmlinux", src_dir)


@pytest.fixture(scope="session")
def old_kernel_dir(tmp_path_factory, src_dir) -> Path:
    """A debug directory whose kernel predates drop reasons."""
    d = tmp_path_factory.mktemp("old_kernel")
    _compile(OLD_KERNEL_C, d / "vmlinux", src_dir)
    return d


@pytest.fixture
def not_elf_dir(tmp_path) -> Path:
    """A directory holding a file that is not an ELF binary."""
    (tmp_path / "vmlinux").write_bytes(b"This is not an ELF file.\x00\x00\x00")
    return tmp_path


# ── In-memory sources ────────────────────────────────────────────────────────

CORE_REASONS = {
    0: "SKB_NOT_DROPPED_YET",
    1: "SKB_CONSUMED",
    2: "SKB_DROP_REASON_NOT_SPECIFIED",
    3: "SKB_DROP_REASON_NO_SOCKET",
    0xFFFF0000: "SKB_DROP_REASON_SUBSYS_MASK",
}

SUBSYSTEMS = {
    0: "SKB_DROP_REASON_SUBSYS_CORE",
    1: "SKB_DROP_REASON_SUBSYS_MAC80211_UNUSABLE",
    2: "SKB_DROP_REASON_SUBSYS_MAC80211_MONITOR",
    3: "SKB_DROP_REASON_SUBSYS_OPENVSWITCH",
    4: "SKB_DROP_REASON_SUBSYS_NUM",
}


@pytest.fixture
def kernel_source() -> StaticTypeSource:
    """Core, both extensions and the sub-system enum."""
    return StaticTypeSource.from_enums({
        "skb_drop_reason": CORE_REASONS,
        "mac80211_drop_reason": {
            1: "RX_QUEUED",
            (1 << 16) | 1: "RX_DROP_U_MIC_FAIL",
            (2 << 16): "RX_DROP_MONITOR",
        },
        "ovs_drop_reason": {
            (3 << 16) | 1: "OVS_DROP_LAST_ACTION",
            (1 << 16) | 1: "OVS_SHADOWED",
        },
        "skb_drop_reason_subsys": SUBSYSTEMS,
    })
