"""
Coverage support for ct runs.

A cover tool is any object with ``start(compile_path, opts)`` returning a
session. The session contributes options to the engine payload before the
run and writes the report after it. The built-in tool uses Erlang's
``cover`` application: Common Test cover-compiles the modules listed in a
generated cover spec and exports the collected data, which is then turned
into per-module HTML files.
"""

import importlib
import logging
import subprocess
from pathlib import Path
from typing import Any, Dict, List, Optional

from constants import (
    COVER_DATA_GLOB,
    COVER_DATA_NAME,
    COVER_SPEC_NAME,
    COVER_SUITE_DATA_NAME,
    COVER_SUITE_SPEC_NAME,
    DEFAULT_ERL_CLI,
)
from exceptions import ConfigurationError, CoverError, ToolNotFoundError

logger = logging.getLogger(__name__)


def _erl_string(value: str) -> str:
    """Quote a Python string as an Erlang string literal"""
    return '"' + value.replace('\\', '\\\\').replace('"', '\\"') + '"'


class CoverSession:
    """Coverage for a single run.

    A batch run exports into ``ct.coverdata``. Each ``engine_options(suite)``
    call gets a spec of its own exporting ``ct.<suite>.coverdata``, so runs
    made one suite at a time do not overwrite each other's data; ``report``
    imports every export before analysing.
    """

    def __init__(self, compile_path: Path, output: Path, erl_path: str = DEFAULT_ERL_CLI,
                 silent: bool = False):
        self.compile_path = compile_path
        self.output = output
        self.erl_path = erl_path
        self.silent = silent
        self.spec_path = output / COVER_SPEC_NAME
        self.data_path = output / COVER_DATA_NAME
        self.exports: List[Path] = [self.data_path]

    def write_spec(self, spec_path: Optional[Path] = None, data_path: Optional[Path] = None) -> Path:
        spec_path = spec_path or self.spec_path
        data_path = data_path or self.data_path
        self.output.mkdir(parents=True, exist_ok=True)
        spec_path.write_text(
            f"{{incl_dirs, [{_erl_string(str(self.compile_path))}]}}.\n"
            f"{{export, {_erl_string(str(data_path))}}}.\n"
        )
        return spec_path

    def engine_options(self, suite: Optional[str] = None) -> Dict[str, Any]:
        if suite is None:
            return {'cover': str(self.spec_path)}

        data_path = self.output / COVER_SUITE_DATA_NAME.format(suite=suite)
        spec_path = self.write_spec(self.output / COVER_SUITE_SPEC_NAME.format(suite=suite), data_path)
        if data_path not in self.exports:
            self.exports.append(data_path)
        return {'cover': str(spec_path)}

    def build_report_command(self, data_paths: Optional[List[Path]] = None):
        if data_paths is None:
            data_paths = self.exports
        out_dir = _erl_string(str(self.output))
        imports = "".join(f"ok = cover:import({_erl_string(str(p))}), " for p in data_paths)
        script = (
            imports
            + "[cover:analyse_to_file(M, filename:join("
            f"{out_dir}, atom_to_list(M) ++ \".COVER.html\"), [html]) "
            "|| M <- cover:imported_modules()], "
            "halt(0)."
        )
        return [self.erl_path, '-noshell', '-pa', str(self.compile_path), '-eval', script]

    def report(self) -> Optional[Path]:
        """Write the HTML report into the output directory.

        Returns the output directory, or None when the run exported no
        coverage data (e.g. the engine failed before any suite started).
        """
        data_paths = [p for p in self.exports if p.exists()]
        if not data_paths:
            logger.warning(f"No coverage data in {self.output}, skipping cover report")
            return None

        try:
            result = subprocess.run(self.build_report_command(data_paths), capture_output=True, text=True)
        except FileNotFoundError:
            raise ToolNotFoundError(self.erl_path)

        if result.returncode != 0:
            raise CoverError(f"Cover analysis failed: {(result.stderr or result.stdout).strip()}")

        if not self.silent:
            print(f"=== Coverage report written to {self.output}")
        return self.output


class CoverTool:
    """Default cover tool backed by Erlang's cover application"""

    def __init__(self, erl_path: str = DEFAULT_ERL_CLI, silent: bool = False):
        self.erl_path = erl_path
        self.silent = silent

    def start(self, compile_path, opts: Dict[str, Any]) -> CoverSession:
        output = Path(opts['output']).resolve()
        session = CoverSession(Path(compile_path).resolve(), output, self.erl_path, self.silent)
        session.write_spec()
        # stale data from an earlier run would be reported as this one
        for stale in output.glob(COVER_DATA_GLOB):
            stale.unlink()
        if not self.silent:
            print(f"=== Cover compiling modules in {compile_path}")
        return session


def load_cover_tool(spec=None, silent: bool = False):
    """Resolve the configured cover tool.

    Parameters
    ----------
    spec : str, type or object, optional
        ``"package.module:attr"``, a class, an instance with ``start``, or
        None for the built-in CoverTool

    Raises
    ------
    ConfigurationError
        If the tool cannot be imported or has no ``start`` method
    """
    if spec is None:
        return CoverTool(silent=silent)

    tool = spec
    if isinstance(spec, str):
        module_name, _, attr = spec.partition(':')
        if not module_name or not attr:
            raise ConfigurationError(f"Cover tool must be given as 'module:attr', got '{spec}'")
        try:
            module = importlib.import_module(module_name)
            tool = getattr(module, attr)
        except (ImportError, AttributeError) as e:
            raise ConfigurationError(f"Could not load cover tool '{spec}': {e}")

    if isinstance(tool, type):
        tool = tool()

    if not callable(getattr(tool, 'start', None)):
        raise ConfigurationError(f"Cover tool {spec!r} has no start() method")
    return tool
