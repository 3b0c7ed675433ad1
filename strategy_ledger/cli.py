"""
cli.py - Command-line entry points.

Each entry point takes one selector flag and returns a process exit code:

    attack_main      --attack {A,B,C,all}     (default A)
    poc_main         --version <name>         (default b-pre-mitigation)
    regression_main  --version <name>         (default b-pre-mitigation)

A malformed command line (missing flag value, unrecognized argument) is
reported through the sink with the usage line and returns 2. An unknown
selector prints the supported values and returns 1. Any StrategyError raised
during a run is reported and returns 1. The regression entry point
additionally returns 1 when the defect is detected. --help prints and exits
through argparse as usual.
"""

from __future__ import annotations
import argparse
import sys
from typing import Dict, List, Optional

from .core import StrategyError, UnknownSelector
from .narration import Narrator, Sink
from .scenarios import (
    ATTACKS, DEFAULT_ATTACK, DEFAULT_VERSION, VERSIONS,
    run_attacks, run_poc, run_regression,
)

# argparse convention for command-line errors.
USAGE_EXIT_CODE = 2


class UsageError(Exception):
    """Bad command line; carries the usage line for reporting."""

    def __init__(self, message: str, usage: str):
        super().__init__(message)
        self.usage = usage


class _SelectorParser(argparse.ArgumentParser):
    """ArgumentParser that raises UsageError instead of exiting."""

    def error(self, message):
        raise UsageError(message, self.format_usage().strip())


def _parse(argv: Optional[List[str]], flag: str, default: str, description: str) -> str:
    parser = _SelectorParser(description=description)
    parser.add_argument(flag, dest="selector", default=default,
                        help=f"scenario selector (default: {default})")
    args = parser.parse_args(argv)
    return args.selector


def _report_usage(out: Narrator, err: UsageError) -> int:
    out.line(err.usage)
    out.line(f"ERROR: {err}")
    return USAGE_EXIT_CODE


def _report_unknown(out: Narrator, err: UnknownSelector, descriptions: Dict[str, str]) -> int:
    out.line(f"ERROR: unsupported {err.kind} \"{err.value}\"")
    out.line(f"supported {err.kind}s:")
    for name in err.supported:
        out.line(f"  - {name}: {descriptions[name]}")
    return 1


def _attack_descriptions() -> Dict[str, str]:
    names = {key: profile.name for key, profile in ATTACKS.items()}
    names["all"] = "every attack scenario in order"
    return names


def _version_descriptions() -> Dict[str, str]:
    return {name: profile.description for name, profile in VERSIONS.items()}


def attack_main(argv: Optional[List[str]] = None, sink: Sink = print) -> int:
    """Run the attack walkthroughs."""
    out = Narrator(sink)
    try:
        selector = _parse(argv, "--attack", DEFAULT_ATTACK, "Deployed-amount attack surface demo")
    except UsageError as err:
        return _report_usage(out, err)
    try:
        if selector in ATTACKS:
            out.line(f"attack: {selector} ({ATTACKS[selector].name})")
            out.line(f"description: {ATTACKS[selector].description}")
        run_attacks(selector, sink=sink)
    except UnknownSelector as err:
        return _report_unknown(out, err, _attack_descriptions())
    except StrategyError as err:
        out.line(f"FAILED: {err}")
        return 1
    out.line("\nattack demo complete")
    return 0


def poc_main(argv: Optional[List[str]] = None, sink: Sink = print) -> int:
    """Run the vulnerable vs fixed _withdraw walkthrough."""
    out = Narrator(sink)
    try:
        version = _parse(argv, "--version", DEFAULT_VERSION, "_withdraw deployedAmount PoC")
    except UsageError as err:
        return _report_usage(out, err)
    try:
        run_poc(version, sink=sink)
    except UnknownSelector as err:
        return _report_unknown(out, err, _version_descriptions())
    except StrategyError as err:
        out.line(f"FAILED: {err}")
        return 1
    out.line("\nPoC complete")
    return 0


def regression_main(argv: Optional[List[str]] = None, sink: Sink = print) -> int:
    """Run the regression check; 0 when clean, 1 when the defect is present."""
    out = Narrator(sink)
    try:
        version = _parse(argv, "--version", DEFAULT_VERSION, "deployedAmount regression check")
    except UsageError as err:
        return _report_usage(out, err)
    try:
        result = run_regression(version, sink=sink)
    except UnknownSelector as err:
        return _report_unknown(out, err, _version_descriptions())
    except StrategyError as err:
        out.line(f"FAILED: {err}")
        return 1
    return 1 if result.vulnerable else 0


def attack_entry() -> None:
    sys.exit(attack_main())


def poc_entry() -> None:
    sys.exit(poc_main())


def regression_entry() -> None:
    sys.exit(regression_main())
