#!/usr/bin/env python3
"""
Engie Command Line Interface
============================

Run the suggestion engine over a text file without an editor.

Usage:
    engie check FILE       List suggestions for a file
    engie fix FILE         Apply every valid suggestion
    engie tone FILE        Show the overall tone and the sentences that set it
    engie config           Show current configuration
    engie version          Show version

Author: Engie contributors | 2025-06-04
"""

import argparse
import json
import logging
import sys
from pathlib import Path
from typing import List, Optional, Set

from .analysis import create_analyzer, create_tone_analyzer
from .config import EngieConfig, config_to_dict, find_config_file, load_config
from .errors import ConfigurationError
from .logging_utils import ActivityLog, configure_logging
from .session import QUICK_FIX_KINDS, EditingSession
from .suggestions import Severity, Suggestion, SuggestionKind
from .version import get_version_info, get_short_banner

logger = logging.getLogger(__name__)

# =============================================================================
# ANSI Colors
# =============================================================================

class Colors:
    """ANSI color codes for terminal output."""
    RED = '\033[0;31m'
    GREEN = '\033[0;32m'
    YELLOW = '\033[1;33m'
    BLUE = '\033[0;34m'
    CYAN = '\033[0;36m'
    BOLD = '\033[1m'
    DIM = '\033[2m'
    NC = '\033[0m'  # No Color

    @classmethod
    def disable(cls):
        """Disable colors (for non-TTY output)."""
        cls.RED = cls.GREEN = cls.YELLOW = cls.BLUE = ''
        cls.CYAN = cls.BOLD = cls.DIM = cls.NC = ''


SEVERITY_COLORS = {
    Severity.HIGH: "RED",
    Severity.MEDIUM: "YELLOW",
    Severity.LOW: "BLUE",
}


def print_ok(msg: str) -> None:
    print(f"{Colors.GREEN}✓{Colors.NC} {msg}")


def print_warn(msg: str) -> None:
    print(f"{Colors.YELLOW}⚠{Colors.NC} {msg}", file=sys.stderr)


def print_error(msg: str) -> None:
    print(f"{Colors.RED}✗{Colors.NC} {msg}", file=sys.stderr)


def print_header(msg: str) -> None:
    print(f"\n{Colors.BOLD}{Colors.CYAN}{msg}{Colors.NC}")
    print("=" * len(msg))


# =============================================================================
# Helpers
# =============================================================================

def _load(args: argparse.Namespace) -> EngieConfig:
    config = load_config(Path(args.config) if getattr(args, "config", None) else None)
    if getattr(args, "backend", None):
        config.analysis.backend = args.backend
    if getattr(args, "mode", None):
        config.analysis.mode = args.mode
    configure_logging(config.logging)
    return config


def _read_text(path: str) -> Optional[str]:
    try:
        return Path(path).read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as e:
        print_error(f"Cannot read {path}: {e}")
        return None


def _open_session(args: argparse.Namespace, text: str, tone: bool = False) -> Optional[EditingSession]:
    config = _load(args)
    config.scan.auto_scan = False  # one-shot run
    try:
        analyzer = create_analyzer(config.analysis)
        tone_analyzer = create_tone_analyzer(config.analysis) if tone else None
    except ConfigurationError as e:
        print_error(str(e))
        return None

    activity_log = ActivityLog.from_config(config.logging) if args.activity_log else None
    return EditingSession(
        Path(args.file).name,
        analyzer,
        config,
        initial_text=text,
        activity_log=activity_log,
        tone_analyzer=tone_analyzer,
    )


def _fix_kinds(args: argparse.Namespace) -> Optional[Set[SuggestionKind]]:
    """Kinds selected with --kind/--quick-fixes, None for all."""
    kinds = {SuggestionKind(k) for k in args.kind or []}
    if args.quick_fixes:
        kinds |= QUICK_FIX_KINDS
    return kinds or None


def format_suggestion(s: Suggestion) -> str:
    """One-line rendering: ``12-19  spelling/high  recieve -> receive``."""
    color = getattr(Colors, SEVERITY_COLORS.get(s.severity, "NC"))
    where = f"{s.anchor.start_index}-{s.anchor.end_index}" if s.anchor else "?"
    line = (
        f"{where:>9}  {color}{s.kind.value}/{s.severity.value}{Colors.NC}  "
        f"{s.original!r} -> {s.replacement!r}"
    )
    if s.explanation:
        line += f"  {Colors.DIM}{s.explanation}{Colors.NC}"
    return line


# =============================================================================
# Commands
# =============================================================================

def cmd_check(args: argparse.Namespace) -> int:
    """List suggestions for a file."""
    text = _read_text(args.file)
    if text is None:
        return 1

    session = _open_session(args, text)
    if session is None:
        return 1

    with session:
        result = session.scan_blocking()
        if result is None:
            print_error("Analysis failed (see log for details)")
            return 1
        suggestions = session.suggestions

    if args.json:
        print(json.dumps({
            "file": args.file,
            "source": result.source,
            "scan_time_ms": round(result.scan_time_ms, 1),
            "suggestions": [s.to_dict() for s in suggestions],
        }, indent=2, ensure_ascii=False))
        return 0

    print_header(f"{args.file} ({result.source})")
    if not suggestions:
        print_ok("No suggestions")
        return 0
    for s in suggestions:
        print(format_suggestion(s))
    print(f"\n{len(suggestions)} suggestion(s)")
    return 0


def cmd_fix(args: argparse.Namespace) -> int:
    """Apply every valid suggestion and write the corrected text."""
    text = _read_text(args.file)
    if text is None:
        return 1

    session = _open_session(args, text)
    if session is None:
        return 1

    with session:
        if session.scan_blocking() is None:
            print_error("Analysis failed (see log for details)")
            return 1
        outcomes = session.apply_all(_fix_kinds(args))
        corrected = session.buffer.text

    applied = sum(1 for o in outcomes if o.applied)
    skipped = len(outcomes) - applied

    if args.output:
        try:
            Path(args.output).write_text(corrected, encoding="utf-8")
        except OSError as e:
            print_error(f"Cannot write {args.output}: {e}")
            return 1
        print_ok(f"Applied {applied} suggestion(s) -> {args.output}")
    else:
        sys.stdout.write(corrected)

    if skipped:
        print_warn(f"{skipped} suggestion(s) no longer matched and were skipped")
    return 0


def cmd_tone(args: argparse.Namespace) -> int:
    """Show the overall tone of a file and the sentences that set it."""
    text = _read_text(args.file)
    if text is None:
        return 1

    session = _open_session(args, text, tone=True)
    if session is None:
        return 1

    with session:
        report = session.check_tone()
    if report is None:
        print_error("Tone analysis failed (see log for details)")
        return 1

    if args.json:
        print(json.dumps({"file": args.file, **report.to_dict()}, indent=2, ensure_ascii=False))
        return 0

    print_header(f"{args.file} ({report.source})")
    print(f"Overall tone: {Colors.BOLD}{report.overall_tone}{Colors.NC} ({report.overall_score:.0%})")
    for h in report.highlights:
        print(f"{h.anchor.start_index:>9}  {Colors.CYAN}{h.tone}{Colors.NC}  {h.text!r}")
    return 0


def cmd_config(args: argparse.Namespace) -> int:
    """Show current configuration."""
    print_header("Engie Configuration")

    path = Path(args.config) if args.config else find_config_file()
    if path:
        print_ok(f"Config file: {path}")
    else:
        print_warn("No configuration file found, using defaults")
    print()

    config = load_config(path)
    for section, items in config_to_dict(config).items():
        print(f"{Colors.BOLD}{section}:{Colors.NC}")
        for key, value in items.items():
            print(f"  {key}: {value}")
        print()
    return 0


def cmd_version(args: argparse.Namespace) -> int:
    """Show version."""
    if args.json:
        print(json.dumps(get_version_info(), indent=2))
    else:
        print(get_short_banner())
    return 0


# =============================================================================
# Main Entry Point
# =============================================================================

def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="engie",
        description="Engie - writing suggestions anchored to your text",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  engie check notes.md                 List suggestions
  engie check notes.md --json          Same, as JSON
  engie fix notes.md -o fixed.md       Apply all suggestions
  engie fix notes.md --quick-fixes     Grammar and spelling only
  engie tone notes.md --backend ollama Tone of the text
  engie check notes.md --backend ollama --mode spelling
        """
    )
    parser.add_argument("-c", "--config", help="Path to engie.yaml")

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    analysis_options = argparse.ArgumentParser(add_help=False)
    analysis_options.add_argument("file", help="Text file to analyze")
    analysis_options.add_argument("--backend", choices=["local", "ollama", "openai"],
                                  help="Analysis backend (default: from config)")
    analysis_options.add_argument("--mode", choices=["spelling", "full"],
                                  help="Analysis mode (default: from config)")
    analysis_options.add_argument("--activity-log", action="store_true",
                                  help="Record suggestion events in the activity log")

    # check
    sub = subparsers.add_parser("check", parents=[analysis_options], help="List suggestions for a file")
    sub.add_argument("--json", action="store_true", help="Output as JSON")
    sub.set_defaults(func=cmd_check)

    # fix
    sub = subparsers.add_parser("fix", parents=[analysis_options], help="Apply every valid suggestion")
    sub.add_argument("-o", "--output", help="Write corrected text here (default: stdout)")
    sub.add_argument("--kind", action="append", choices=[k.value for k in SuggestionKind],
                     help="Only apply suggestions of this kind (repeatable)")
    sub.add_argument("--quick-fixes", action="store_true",
                     help="Only apply grammar and spelling corrections")
    sub.set_defaults(func=cmd_fix)

    # tone
    sub = subparsers.add_parser("tone", parents=[analysis_options],
                                help="Show the overall tone and the sentences that set it")
    sub.add_argument("--json", action="store_true", help="Output as JSON")
    sub.set_defaults(func=cmd_tone)

    # config
    sub = subparsers.add_parser("config", help="Show current configuration")
    sub.set_defaults(func=cmd_config)

    # version
    sub = subparsers.add_parser("version", help="Show version")
    sub.add_argument("--json", action="store_true", help="Output as JSON")
    sub.set_defaults(func=cmd_version)

    return parser


def main(argv: Optional[List[str]] = None) -> int:
    """Main CLI entry point."""
    # Disable colors if not TTY
    if not sys.stdout.isatty():
        Colors.disable()

    parser = build_parser()
    args = parser.parse_args(argv)

    if args.command is None:
        parser.print_help()
        return 0

    return args.func(args)


if __name__ == "__main__":
    sys.exit(main())
