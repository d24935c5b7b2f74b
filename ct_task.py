import dataclasses
import logging
from typing import List, Optional, Sequence

from compiler import ErlangCompiler
from config_utils import (
    augment_build_config,
    code_paths,
    ebin_path,
    get_cover_config,
    get_engine_config,
    load_project_config,
)
from cover import load_cover_tool
from ct_engine import (
    AllPassed,
    CommonTestEngine,
    EngineError,
    Outcome,
    SomeFailed,
    build_engine_options,
)
from exceptions import CtRunnerError, EngineFailure, EngineRunError
from options import CtOptions, format_selection, parse_options
from suites import prepare, resolve_suites

logger = logging.getLogger(__name__)


class CtTask:
    """Compiles a project and runs its Common Test suites.

    One call to ``run`` goes through: parse args, augment the project
    configuration, compile, start cover (if requested), resolve suites,
    prepare the log and data directories, invoke the engine, write the cover
    report, and finally turn the engine outcome into success or an exception.

    Attributes:
        project_path (str): Project file, None for the default location
        compiler: Object with ``compile(project)``; ErlangCompiler by default
        engine: Object with ``run(ct_opts, code_paths)``; built from the
            project's ``engine`` section by default
        cover_tool: Cover tool override; taken from ``test_coverage.tool``
            by default
        silent (bool): Whether to suppress progress output
    """

    def __init__(self, project_path: Optional[str] = None, compiler=None, engine=None,
                 cover_tool=None, silent: bool = False):
        self.project_path = project_path
        self.compiler = compiler or ErlangCompiler(silent=silent)
        self.engine = engine
        self.cover_tool = cover_tool
        self.silent = silent

    def _say(self, message: str) -> None:
        if not self.silent:
            print(message)

    def run(self, argv: Sequence[str]) -> Outcome:
        """Run the task for the given command-line tokens.

        Returns
        -------
        Outcome
            AllPassed when every selected suite passed or nothing was selected

        Raises
        ------
        UsageError
            On bad flags, before anything is compiled or written
        EngineFailure
            If test cases failed, after the cover report has been written
        EngineRunError
            If the engine itself failed, after the cover report has been written
        CtRunnerError
            For compile, file system, configuration and cover errors
        """
        project = load_project_config(self.project_path)
        options = parse_options(argv, project)
        logger.debug(f"Options: {options}")

        project = augment_build_config(project, options)
        self.compiler.compile(project)
        ebin_dir = ebin_path(project)

        session = None
        if options.cover:
            cover_config = get_cover_config(project)
            tool = self.cover_tool or load_cover_tool(cover_config['tool'], silent=self.silent)
            session = tool.start(ebin_dir, cover_config)

        suites = resolve_suites(options)
        if not suites:
            self._say(f"=== No suites found in {options.dir}")
            return AllPassed()

        prepare(suites, options, ebin_dir)

        selection = format_selection(options)
        self._say(f"=== Running {len(suites)} suite(s)" + (f" ({' '.join(selection)})" if selection else ""))

        engine_config = get_engine_config(project)
        engine = self.engine or CommonTestEngine.from_config(engine_config, silent=self.silent)
        paths = code_paths(project)

        if engine_config['run_mode'] == 'per_suite':
            outcome = self._run_per_suite(engine, options, suites, ebin_dir, session, paths)
        else:
            ct_opts = build_engine_options(options, ebin_dir)
            if session is not None:
                ct_opts.update(session.engine_options())
            outcome = engine.run(ct_opts, paths)

        if session is not None:
            self._report_cover(session, outcome)

        return self._check_outcome(outcome)

    def _run_per_suite(self, engine, options: CtOptions, suites: List[str], ebin_dir,
                       session, paths: List[str]) -> Outcome:
        """Invoke the engine once per suite, stopping at the first suite that does not pass"""
        outcome: Outcome = AllPassed()
        for suite in suites:
            ct_opts = build_engine_options(dataclasses.replace(options, suite=(suite,)), ebin_dir)
            if session is not None:
                ct_opts.update(session.engine_options(suite))
            outcome = engine.run(ct_opts, paths)
            if not isinstance(outcome, AllPassed):
                logger.error(f"CT failure in {suite}")
                return outcome
        return outcome

    @staticmethod
    def _report_cover(session, outcome: Outcome) -> None:
        """Write the cover report. A failing report only fails a run whose tests passed."""
        try:
            session.report()
        except CtRunnerError as e:
            if isinstance(outcome, AllPassed):
                raise
            logger.error(f"Cover report not written: {e}")

    @staticmethod
    def _check_outcome(outcome: Outcome) -> Outcome:
        if isinstance(outcome, SomeFailed):
            raise EngineFailure(outcome.count)
        if isinstance(outcome, EngineError):
            raise EngineRunError(outcome.detail)
        return outcome
