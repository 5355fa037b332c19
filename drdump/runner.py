"""
Runner — top-level orchestration: debug info → drop reasons → text.

Ties the metadata source, the reason-table builder and the formatters
together.  ``run_drdump`` is usable as a library call; ``main`` is the
``drdump`` command-line entry point.
"""
import argparse
import logging
import sys
from enum import Enum, unique
from pathlib import Path
from typing import Optional

from pydantic import ValidationError

from drdump import __version__
from drdump.config import Settings
from drdump.core.dwarf_source import DwarfTypeSource
from drdump.core.errors import DrdumpError
from drdump.core.reason_table import ReasonTables, build_reason_tables
from drdump.io.formatter import render_one, render_raw
from drdump.io.scripts import ScriptDialect, render_script
from drdump.policy.profile import Profile

logger = logging.getLogger(__name__)


@unique
class OutputFormat(str, Enum):
    RAW = "raw"
    BPFTRACE = "bpftrace"
    STAP = "stap"


def render_output(
    tables: ReasonTables,
    resolve: Optional[int] = None,
    output_format: OutputFormat = OutputFormat.RAW,
    verbose: bool = False,
) -> str:
    """
    Render resolved tables according to the requested operation.

    A value to *resolve* takes precedence over *output_format*.
    """
    if resolve is not None:
        return render_one(resolve, tables.reasons, tables.subsystems, verbose)

    output_format = OutputFormat(output_format)
    if output_format == OutputFormat.RAW:
        return "\n".join(render_raw(tables.reasons, tables.subsystems, verbose))
    return render_script(tables.reasons, ScriptDialect(output_format.value))


def run_drdump(
    debug_dir: Path,
    resolve: Optional[int] = None,
    output_format: OutputFormat = OutputFormat.RAW,
    verbose: bool = False,
    profile: Profile | None = None,
) -> str:
    """
    Resolve drop reasons from the debug info under *debug_dir*.

    Parameters
    ----------
    debug_dir : Path
        Directory holding kernel ELF files with DWARF info, or one such file.
    resolve : int, optional
        Raw drop-reason value to translate.  When None, the whole table
        is rendered in *output_format*.
    output_format : OutputFormat
        raw, bpftrace or stap.
    verbose : bool
        Annotate known values with their sub-system.
    profile : Profile, optional
        Kernel layout.  Defaults to Profile.v0().

    Returns
    -------
    str
        The text to print, without a trailing newline.

    Raises
    ------
    MetadataLoadError, DropReasonsUnsupported, MemberNameError
    """
    with DwarfTypeSource(debug_dir) as source:
        tables = build_reason_tables(source, profile)
    return render_output(tables, resolve, output_format, verbose)


# ── CLI ──────────────────────────────────────────────────────────────────────

def _u32(text: str) -> int:
    """argparse type: a decimal or 0x-prefixed 32-bit unsigned value."""
    try:
        value = int(text, 10)
    except ValueError:
        try:
            value = int(text, 0)
        except ValueError:
            raise argparse.ArgumentTypeError(f"invalid value: {text!r}") from None
    if not 0 <= value <= 0xFFFFFFFF:
        raise argparse.ArgumentTypeError(f"value out of u32 range: {text!r}")
    return value


def build_parser(settings: Optional[Settings] = None) -> argparse.ArgumentParser:
    if settings is None:
        settings = Settings()
    parser = argparse.ArgumentParser(
        prog="drdump",
        description="Dumps and translates skb drop reasons given a set of kernel debug files",
        formatter_class=argparse.RawTextHelpFormatter,
    )
    parser.add_argument(
        "--debug-dir",
        dest="debug_dir",
        type=Path,
        default=Path(settings.DEBUG_DIR),
        help="Directory (or ELF file) holding kernel debug info (default: %(default)s)",
    )
    parser.add_argument(
        "-r", "--resolve",
        type=_u32,
        default=None,
        help="Resolve given value into a drop reason enum value",
    )
    parser.add_argument(
        "-f", "--format",
        dest="output_format",
        choices=[f.value for f in OutputFormat],
        default=settings.FORMAT,
        help=(
            "Format to output the drop reason values:\n"
            "- raw: output on stdout all the drop reasons that were found\n"
            "- bpftrace: construct a bpftrace monitoring script\n"
            "- stap: construct a system-tap monitoring script\n"
        ),
    )
    parser.add_argument(
        "-v", "--verbose",
        action="store_true",
        help="Increase verbosity (eg. display sub-system for drop reasons)",
    )
    parser.add_argument(
        "--log-level",
        default=settings.LOG_LEVEL,
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Diagnostics level on stderr (default: %(default)s)",
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    return parser


def main(argv=None) -> int:
    """CLI entry point for drdump."""
    try:
        settings = Settings()
    except ValidationError as e:
        fields = ", ".join(f"DRDUMP_{err['loc'][0]}" for err in e.errors())
        argparse.ArgumentParser(prog="drdump").error(f"invalid environment setting: {fields}")
    args = build_parser(settings).parse_args(argv)

    # Diagnostics go to stderr even when the root logger is already set up.
    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(logging.Formatter("%(levelname)s: %(message)s"))
    pkg_logger = logging.getLogger("drdump")
    previous_level = pkg_logger.level
    pkg_logger.addHandler(handler)
    pkg_logger.setLevel(args.log_level)

    try:
        output = run_drdump(
            debug_dir=args.debug_dir,
            resolve=args.resolve,
            output_format=OutputFormat(args.output_format),
            verbose=args.verbose,
        )
    except DrdumpError as e:
        logger.error("%s", e)
        return 1
    finally:
        pkg_logger.removeHandler(handler)
        pkg_logger.setLevel(previous_level)

    # An empty raw table has nothing to list.
    if output:
        print(output)
    return 0


if __name__ == "__main__":
    sys.exit(main())
