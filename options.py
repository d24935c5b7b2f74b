"""Command-line option parsing for ct-runner."""

import argparse
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Sequence, Tuple

from config_utils import build_path
from constants import DEFAULT_LOG_DIR_NAME, DEFAULT_TEST_DIR
from exceptions import UsageError

USAGE_EPILOG = """\
list options take comma separated values, e.g. --suite foo_SUITE,bar_SUITE

environment:
  CT_ENV             build environment used for _build/<env> paths (default: test)
  CT_RUNNER_DEBUG    set to 'true' for debug logging
"""


@dataclass(frozen=True)
class CtOptions:
    """Resolved options for one run. List options left unset are None."""

    suite: Optional[Tuple[str, ...]] = None
    group: Optional[Tuple[str, ...]] = None
    testcase: Optional[Tuple[str, ...]] = None
    config: Optional[Tuple[str, ...]] = None
    log_dir: str = ""
    cover: bool = False
    dir: str = DEFAULT_TEST_DIR


class _StrictArgumentParser(argparse.ArgumentParser):
    """ArgumentParser that raises UsageError instead of exiting"""

    def error(self, message):
        raise UsageError(f"{message}\n{self.format_usage().strip()}")


def build_parser() -> argparse.ArgumentParser:
    parser = _StrictArgumentParser(
        prog="ct-runner",
        description="Compile the project and run its Common Test suites.",
        epilog=USAGE_EPILOG,
        formatter_class=argparse.RawDescriptionHelpFormatter,
        allow_abbrev=False,
    )
    parser.add_argument("--suite", "-s", help="comma separated list of suites to run")
    parser.add_argument("--group", "-g", help="comma separated list of groups to run")
    parser.add_argument("--testcase", "-t", help="comma separated list of test cases to run")
    parser.add_argument("--config", "-f", help="test config to use; default: <dir>/test.config")
    parser.add_argument(
        "--log-dir", "--log_dir", "-l",
        dest="log_dir",
        help="change the output directory; default: _build/<ENV>/ct_logs",
    )
    parser.add_argument("--cover", "-c", action="store_true", default=None, help="run cover report")
    parser.add_argument(
        "--no-cover", dest="cover", action="store_false", default=None,
        help="do not run cover, even when the project file enables it",
    )
    parser.add_argument("--dir", "-d", help="test source directory; default: test")
    return parser


def list_param(value: Any) -> Optional[Tuple[str, ...]]:
    """Split a comma separated value into a tuple of names.

    Lists (as they appear in the project file) are taken as they are.
    Anything that yields no names at all becomes None.
    """
    if value is None:
        return None
    if isinstance(value, (list, tuple)):
        items = [str(v) for v in value]
    else:
        items = str(value).split(",")
    items = tuple(item.strip() for item in items if item.strip())
    return items or None


def default_options() -> Dict[str, Any]:
    return {
        'log_dir': str(build_path(DEFAULT_LOG_DIR_NAME)),
        'dir': DEFAULT_TEST_DIR,
        'cover': False,
    }


def parse_options(argv: Sequence[str], project: Optional[Dict[str, Any]] = None) -> CtOptions:
    """Parse command-line tokens into CtOptions.

    Precedence is command line, then the project's ``ct`` section, then the
    built-in defaults.

    Raises
    ------
    UsageError
        On unknown flags, missing values or positional arguments
    """
    args = build_parser().parse_args(list(argv))
    switches = {k: v for k, v in vars(args).items() if v is not None}

    merged = default_options()
    merged.update((project or {}).get('ct') or {})
    merged.update(switches)

    return CtOptions(
        suite=list_param(merged.get('suite')),
        group=list_param(merged.get('group')),
        testcase=list_param(merged.get('testcase')),
        config=list_param(merged.get('config')),
        log_dir=str(merged['log_dir']),
        cover=bool(merged['cover']),
        dir=str(merged['dir']),
    )


def format_selection(options: CtOptions) -> List[str]:
    """Human readable summary of the selection, for progress output"""
    parts = []
    for name in ('suite', 'group', 'testcase'):
        value = getattr(options, name)
        if value:
            parts.append(f"{name}={','.join(value)}")
    return parts
