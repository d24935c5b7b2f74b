import logging
import subprocess
from pathlib import Path
from typing import Any, Dict, List

from config_utils import code_paths, ebin_path
from constants import DEFAULT_COMPILER_CLI, FIXTURE_DIR_SUFFIX, SUITE_SOURCE_EXTENSION
from exceptions import CompileError, ToolNotFoundError

logger = logging.getLogger(__name__)


class ErlangCompiler:
    """Compiles the project's Erlang sources with ``erlc``.

    Attributes:
        cli_path (str): erlc executable
        silent (bool): Whether to suppress progress output
    """

    def __init__(self, cli_path: str = DEFAULT_COMPILER_CLI, silent: bool = False):
        self.cli_path = cli_path
        self.silent = silent

    def find_sources(self, project: Dict[str, Any]) -> List[str]:
        """All ``.erl`` files under the project's compile paths, in path order"""
        sources = []
        for erlc_path in project.get('erlc_paths') or []:
            root = Path(erlc_path)
            if not root.is_dir():
                logger.debug(f"Skipping missing compile path {erlc_path}")
                continue
            for source in sorted(root.rglob(f"*{SUITE_SOURCE_EXTENSION}")):
                # suite data directories hold fixtures, not code
                if any(part.endswith(f"_SUITE{FIXTURE_DIR_SUFFIX}") for part in source.parts[:-1]):
                    continue
                if str(source) not in sources:
                    sources.append(str(source))
        return sources

    def build_command(self, project: Dict[str, Any], sources: List[str]) -> List[str]:
        cmd = [self.cli_path, '-o', str(ebin_path(project))]
        include_path = project.get('erlc_include_path')
        if include_path:
            cmd.extend(['-I', str(include_path)])
        for path in code_paths(project):
            cmd.extend(['-pa', path])
        cmd.extend(project.get('erlc_options') or [])
        cmd.extend(sources)
        return cmd

    def compile(self, project: Dict[str, Any]) -> List[str]:
        """Compile every source into the application's ebin directory.

        Returns
        -------
        List[str]
            The source files passed to the compiler

        Raises
        ------
        ToolNotFoundError
            If erlc is not installed
        CompileError
            If erlc exits with a non-zero status
        """
        sources = self.find_sources(project)
        if not sources:
            logger.info("Nothing to compile")
            return []

        ebin_path(project).mkdir(parents=True, exist_ok=True)
        cmd = self.build_command(project, sources)

        if not self.silent:
            print(f"=== Compiling {len(sources)} file(s)...")
        logger.debug(f"Running: {' '.join(cmd)}")

        try:
            result = subprocess.run(cmd, capture_output=True, text=True)
        except FileNotFoundError:
            raise ToolNotFoundError(self.cli_path)

        if result.returncode != 0:
            output = "\n".join(part for part in (result.stdout, result.stderr) if part).strip()
            raise CompileError(output or f"{self.cli_path} exited with code {result.returncode}")

        if result.stdout and not self.silent:
            # erlc prints warnings on stdout
            print(result.stdout.rstrip())

        return sources
