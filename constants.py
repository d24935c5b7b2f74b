"""
Constants for the ct-runner tool.

This module contains non-configurable constants used throughout the application.
For configurable values, see ct_project.yaml.
"""

# Project file and build environment
DEFAULT_PROJECT_FILE = "ct_project.yaml"
DEFAULT_BUILD_ENV = "test"
BUILD_ENV_VAR = "CT_ENV"
BUILD_ROOT = "_build"

# Option defaults
DEFAULT_TEST_DIR = "test"
DEFAULT_LOG_DIR_NAME = "ct_logs"
DEFAULT_TEST_CONFIG_NAME = "test.config"

# Suite discovery
SUITE_FILE_PATTERN = "*_SUITE.erl"
SUITE_SOURCE_EXTENSION = ".erl"
FIXTURE_DIR_SUFFIX = "_data"

# Compiler
DEFAULT_ERLC_PATHS = ["src"]
DEFAULT_ERLC_OPTIONS = ["+debug_info"]
DEFAULT_INCLUDE_PATH = "include"
TEST_DEFINE = "-DTEST"
READABLE_TRANSFORM = "+{parse_transform, cth_readable_transform}"

# Engine
DEFAULT_ENGINE_CLI = "ct_run"
DEFAULT_COMPILER_CLI = "erlc"
DEFAULT_ERL_CLI = "erl"
CT_HOOKS = ["cth_readable_failonly", "cth_readable_shell"]
RUN_MODES = ("batch", "per_suite")
DEFAULT_RUN_MODE = "batch"
DEFAULT_DETAIL_TAIL_LINES = 20

# Coverage
DEFAULT_COVER_OUTPUT = "cover"
COVER_SPEC_NAME = "ct.coverspec"
COVER_DATA_NAME = "ct.coverdata"
# per_suite runs export one data file per suite
COVER_SUITE_SPEC_NAME = "ct.{suite}.coverspec"
COVER_SUITE_DATA_NAME = "ct.{suite}.coverdata"
COVER_DATA_GLOB = "ct*.coverdata"

# Exit statuses
EXIT_OK = 0
EXIT_FAILURE = 1
EXIT_USAGE = 2
