import logging
import re
import subprocess
import threading
from collections import deque
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional, Union

from constants import (
    CT_HOOKS,
    DEFAULT_DETAIL_TAIL_LINES,
    DEFAULT_ENGINE_CLI,
    DEFAULT_TEST_CONFIG_NAME,
)
from exceptions import ToolNotFoundError

logger = logging.getLogger(__name__)

# "TEST COMPLETE, 3 ok, 1 failed, 2 skipped (1 user skipped, 1 auto skipped) of 6 test cases"
SUMMARY_PATTERN = re.compile(
    r"TEST COMPLETE,\s*(?P<ok>\d+) ok,\s*(?P<failed>\d+) failed"
    r"(?:,\s*(?P<skipped>\d+) skipped"
    r"(?:\s*\((?P<user>\d+) user skipped,\s*(?P<auto>\d+) auto skipped\))?)?"
    r"\s+of\s+(?P<total>\d+) test cases"
)


@dataclass(frozen=True)
class EngineReport:
    """Counts from the engine's summary: ok, failed, (user skipped, auto skipped)"""

    ok: int = 0
    failed: int = 0
    user_skipped: int = 0
    auto_skipped: int = 0

    def __add__(self, other: "EngineReport") -> "EngineReport":
        return EngineReport(
            self.ok + other.ok,
            self.failed + other.failed,
            self.user_skipped + other.user_skipped,
            self.auto_skipped + other.auto_skipped,
        )


@dataclass(frozen=True)
class AllPassed:
    report: Optional[EngineReport] = None


@dataclass(frozen=True)
class SomeFailed:
    count: int
    report: Optional[EngineReport] = None


@dataclass(frozen=True)
class EngineError:
    detail: str


Outcome = Union[AllPassed, SomeFailed, EngineError]


def parse_summary_line(line: str) -> Optional[EngineReport]:
    match = SUMMARY_PATTERN.search(line)
    if not match:
        return None
    skipped = int(match.group('skipped') or 0)
    if match.group('user') is not None:
        user_skipped = int(match.group('user'))
        auto_skipped = int(match.group('auto'))
    else:
        user_skipped, auto_skipped = skipped, 0
    return EngineReport(int(match.group('ok')), int(match.group('failed')), user_skipped, auto_skipped)


def decode_result(returncode: int, report: Optional[EngineReport], detail: str = "") -> Outcome:
    """Map the engine's exit status and summary onto an Outcome.

    Only the failed count decides between passing and failing; auto skipped
    cases make ct_run exit with 1 but do not fail the run.
    """
    if returncode == 0:
        return AllPassed(report)
    if returncode == 1 and report is not None:
        if report.failed > 0:
            return SomeFailed(report.failed, report)
        return AllPassed(report)
    return EngineError(detail or f"ct_run exited with code {returncode}")


def build_engine_options(options, ebin_dir: Union[str, Path]) -> Dict[str, Any]:
    """Assemble the engine payload for one run.

    suite, group and testcase appear only when selected; leaving them out
    means "everything". Without a suite selection the test source directory
    is added as a second scan root.
    """
    config = list(options.config) if options.config else [
        str(Path(options.dir) / DEFAULT_TEST_CONFIG_NAME)
    ]
    ct_opts: Dict[str, Any] = {
        'auto_compile': False,
        'ct_hooks': list(CT_HOOKS),
        'logdir': str(options.log_dir),
        'config': config,
        'dir': [str(ebin_dir)],
    }

    for name in ('suite', 'group', 'testcase'):
        value = getattr(options, name)
        if value:
            ct_opts[name] = list(value)

    if 'suite' not in ct_opts:
        ct_opts['dir'].append(str(options.dir))

    return ct_opts


class CommonTestEngine:
    """Runs Common Test through the ``ct_run`` front end.

    Attributes:
        cli_path (str): ct_run executable
        timeout (float): Seconds before the run is killed, or None to wait forever
        silent (bool): Whether to suppress the engine's output
    """

    def __init__(self, cli_path: str = DEFAULT_ENGINE_CLI, timeout: Optional[float] = None,
                 silent: bool = False):
        self.cli_path = cli_path
        self.timeout = timeout
        self.silent = silent

    @classmethod
    def from_config(cls, engine_config: Dict[str, Any], silent: bool = False) -> "CommonTestEngine":
        return cls(
            cli_path=engine_config.get('cli_path', DEFAULT_ENGINE_CLI),
            timeout=engine_config.get('timeout'),
            silent=silent,
        )

    def build_command(self, ct_opts: Dict[str, Any], code_paths: Iterable[str] = ()) -> List[str]:
        """Render the engine payload as ct_run arguments"""
        cmd = [self.cli_path]

        pa = list(code_paths) + list(ct_opts.get('dir', []))[:1]
        if pa:
            cmd.append('-pa')
            cmd.extend(pa)

        if not ct_opts.get('auto_compile', True):
            cmd.append('-no_auto_compile')

        hooks = ct_opts.get('ct_hooks') or []
        if hooks:
            cmd.append('-ct_hooks')
            for i, hook in enumerate(hooks):
                if i:
                    cmd.append('and')
                cmd.append(hook)

        cmd.extend(['-logdir', ct_opts['logdir']])

        if ct_opts.get('config'):
            cmd.append('-config')
            cmd.extend(ct_opts['config'])

        if ct_opts.get('cover'):
            cmd.extend(['-cover', ct_opts['cover']])

        cmd.append('-dir')
        cmd.extend(ct_opts['dir'])

        for key, flag in (('suite', '-suite'), ('group', '-group'), ('testcase', '-case')):
            if ct_opts.get(key):
                cmd.append(flag)
                cmd.extend(ct_opts[key])

        return cmd

    def run(self, ct_opts: Dict[str, Any], code_paths: Iterable[str] = ()) -> Outcome:
        """Invoke the engine once and decode its result.

        Raises
        ------
        ToolNotFoundError
            If ct_run is not installed
        """
        cmd = self.build_command(ct_opts, code_paths)
        logger.debug(f"Running: {' '.join(cmd)}")

        try:
            process = subprocess.Popen(
                cmd,
                stdout=subprocess.PIPE,
                stderr=subprocess.STDOUT,
                text=True,
            )
        except FileNotFoundError:
            raise ToolNotFoundError(self.cli_path)

        timed_out = threading.Event()
        timer = None
        if self.timeout:
            def _kill():
                timed_out.set()
                process.kill()
            timer = threading.Timer(self.timeout, _kill)
            timer.daemon = True
            timer.start()

        report = None
        tail = deque(maxlen=DEFAULT_DETAIL_TAIL_LINES)
        try:
            for line in process.stdout:
                line = line.rstrip('\n')
                if not self.silent:
                    print(line)
                tail.append(line)
                parsed = parse_summary_line(line)
                if parsed is not None:
                    report = parsed if report is None else report + parsed
            process.wait()
        finally:
            if timer is not None:
                timer.cancel()

        if timed_out.is_set():
            return EngineError(f"{self.cli_path} timed out after {self.timeout} seconds")

        logger.debug(f"{self.cli_path} exited with code {process.returncode}, report: {report}")
        detail = "\n".join(entry for entry in tail if entry.strip())
        return decode_result(process.returncode, report, detail)
