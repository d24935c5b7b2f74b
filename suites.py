"""Suite resolution and the file-system preparation that precedes a run."""

import logging
import os
import shutil
from pathlib import Path
from typing import Iterable, List, Union

from constants import FIXTURE_DIR_SUFFIX, SUITE_FILE_PATTERN
from exceptions import FixtureCopyError, LogDirError

logger = logging.getLogger(__name__)


def resolve_suites(options) -> List[str]:
    """Suites selected on the command line, or every suite in the test directory"""
    if options.suite:
        return list(options.suite)
    return all_suites(options.dir)


def all_suites(test_dir: Union[str, Path]) -> List[str]:
    """Names of the ``*_SUITE.erl`` modules in ``test_dir``, without extension.

    Order follows the directory listing and is not guaranteed to be stable
    across platforms.
    """
    return [path.stem for path in Path(test_dir).glob(SUITE_FILE_PATTERN) if path.is_file()]


def prepare(suites: Iterable[str], options, ebin_dir: Union[str, Path]) -> None:
    """Create the log directory and copy every suite's data directory next to
    the compiled suites, where Common Test looks for it."""
    make_log_dir(options.log_dir)
    copy_data_dirs(suites, options.dir, ebin_dir)


def make_log_dir(log_dir: Union[str, Path]) -> None:
    try:
        os.makedirs(log_dir, exist_ok=True)
    except OSError as e:
        raise LogDirError(str(log_dir), os.getcwd(), str(e))


def copy_data_dirs(suites: Iterable[str], test_dir: Union[str, Path], ebin_dir: Union[str, Path]) -> None:
    for suite in suites:
        copy_data_dir(suite, test_dir, ebin_dir)


def copy_data_dir(suite: str, test_dir: Union[str, Path], ebin_dir: Union[str, Path]) -> bool:
    """Copy ``<test_dir>/<suite>_data`` into ``ebin_dir``.

    Returns
    -------
    bool
        True if a data directory was copied, False if the suite has none

    Raises
    ------
    FixtureCopyError
        On any failure other than the data directory being absent
    """
    data_dir_name = f"{suite}{FIXTURE_DIR_SUFFIX}"
    data_dir = os.path.join(str(test_dir), data_dir_name)
    dest_dir = os.path.join(str(ebin_dir), data_dir_name)

    try:
        shutil.copytree(data_dir, dest_dir, dirs_exist_ok=True)
    except FileNotFoundError as e:
        if e.filename == data_dir:
            logger.debug(f"No data dir for {suite}")
            return False
        raise FixtureCopyError(suite, str(e))
    except OSError as e:
        raise FixtureCopyError(suite, str(e))

    logger.debug(f"Copied {data_dir} -> {dest_dir}")
    return True
