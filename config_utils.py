import os
import yaml
import threading
import copy
from typing import Dict, Any, Optional, List
from pathlib import Path

from constants import (
    BUILD_ENV_VAR,
    BUILD_ROOT,
    DEFAULT_BUILD_ENV,
    DEFAULT_COVER_OUTPUT,
    DEFAULT_ENGINE_CLI,
    DEFAULT_ERLC_OPTIONS,
    DEFAULT_ERLC_PATHS,
    DEFAULT_INCLUDE_PATH,
    DEFAULT_PROJECT_FILE,
    DEFAULT_RUN_MODE,
    READABLE_TRANSFORM,
    RUN_MODES,
    TEST_DEFINE,
)
from exceptions import ConfigurationError

# Thread-safe configuration cache
_config_cache: Dict[str, Dict[str, Any]] = {}
_cache_lock = threading.Lock()

# Numeric bounds for configuration values
NUMERIC_BOUNDS = {
    'timeout': (1, 86400),
}

# Keys accepted in the project-level ``ct`` defaults section
CT_OPTION_KEYS = ('suite', 'group', 'testcase', 'config', 'log_dir', 'cover', 'dir')


def get_build_env() -> str:
    """Return the build environment name used for ``_build/<env>`` paths"""
    return os.environ.get(BUILD_ENV_VAR) or DEFAULT_BUILD_ENV


def build_path(*parts: str) -> Path:
    """Path under the build tree of the current environment"""
    return Path(BUILD_ROOT, get_build_env(), *parts)


def default_config() -> Dict[str, Any]:
    """Project configuration used when no project file exists"""
    return {
        'app': Path.cwd().name,
        'erlc_paths': list(DEFAULT_ERLC_PATHS),
        'erlc_options': list(DEFAULT_ERLC_OPTIONS),
        'erlc_include_path': DEFAULT_INCLUDE_PATH,
        'test_coverage': {},
        'ct': {},
        'engine': {},
    }


def load_project_config(config_path: Optional[str] = None) -> Dict[str, Any]:
    """Load, default and validate the project file, caching the parsed result.

    A missing project file is not an error: the project is then described
    entirely by defaults. Callers always receive their own copy, so the
    returned dict may be modified freely.
    """
    if config_path is None:
        config_path = DEFAULT_PROJECT_FILE

    config_path_str = str(Path(config_path).resolve())

    with _cache_lock:
        if config_path_str in _config_cache:
            return copy.deepcopy(_config_cache[config_path_str])

    config = default_config()
    if Path(config_path).exists():
        try:
            with open(config_path, 'r') as f:
                loaded = yaml.safe_load(f) or {}
        except yaml.YAMLError as e:
            raise ConfigurationError(f"Invalid YAML in {config_path}: {e}")
        if not isinstance(loaded, dict):
            raise ConfigurationError(f"{config_path} must contain a mapping at the top level")
        config.update(loaded)

    validate_config(config)

    with _cache_lock:
        _config_cache[config_path_str] = config

    return copy.deepcopy(config)


def validate_numeric_bounds(config: Dict[str, Any], path: str = "") -> List[str]:
    """Validate numeric configuration values are within acceptable bounds

    Parameters
    ----------
    config : dict
        Configuration dictionary to validate
    path : str
        Current path in the configuration tree (for error messages)

    Returns
    -------
    List[str]
        List of error messages for out-of-bounds values
    """
    errors = []

    for key, value in config.items():
        current_path = f"{path}.{key}" if path else key

        if isinstance(value, dict):
            errors.extend(validate_numeric_bounds(value, current_path))
        elif isinstance(value, (int, float)) and not isinstance(value, bool) and key in NUMERIC_BOUNDS:
            min_val, max_val = NUMERIC_BOUNDS[key]
            if not min_val <= value <= max_val:
                errors.append(
                    f"{current_path}: {value} is outside bounds [{min_val}, {max_val}]"
                )

    return errors


def validate_config(config: Dict[str, Any]) -> bool:
    """Validate project configuration structure"""
    app = config.get('app')
    if not isinstance(app, str) or not app:
        raise ConfigurationError("'app' must be a non-empty string")

    for field in ('erlc_paths', 'erlc_options'):
        value = config.get(field)
        if not isinstance(value, list) or not all(isinstance(v, str) for v in value):
            raise ConfigurationError(f"'{field}' must be a list of strings")

    for section in ('test_coverage', 'ct', 'engine'):
        if not isinstance(config.get(section) or {}, dict):
            raise ConfigurationError(f"'{section}' must be a mapping")

    unknown = set(config.get('ct') or {}) - set(CT_OPTION_KEYS)
    if unknown:
        raise ConfigurationError(f"Unknown ct option(s): {', '.join(sorted(unknown))}")

    cover = (config.get('ct') or {}).get('cover')
    if cover is not None and not isinstance(cover, bool):
        raise ConfigurationError(f"'ct.cover' must be true or false, got {cover!r}")

    run_mode = (config.get('engine') or {}).get('run_mode', DEFAULT_RUN_MODE)
    if run_mode not in RUN_MODES:
        raise ConfigurationError(
            f"Unknown engine run_mode '{run_mode}', expected one of: {', '.join(RUN_MODES)}"
        )

    code_paths = config.get('code_paths')
    if code_paths is not None and not isinstance(code_paths, list):
        raise ConfigurationError("'code_paths' must be a list")

    bound_errors = validate_numeric_bounds(config)
    if bound_errors:
        raise ConfigurationError("Configuration bounds errors:\n" + "\n".join(bound_errors))

    return True


def get_engine_config(config: Dict[str, Any]) -> Dict[str, Any]:
    """Engine settings with defaults filled in"""
    engine_config = {
        'cli_path': DEFAULT_ENGINE_CLI,
        'timeout': None,
        'run_mode': DEFAULT_RUN_MODE,
    }
    engine_config.update(config.get('engine') or {})
    return engine_config


def get_cover_config(config: Dict[str, Any]) -> Dict[str, Any]:
    """Coverage settings: project ``test_coverage`` over the defaults"""
    cover_config = {'output': DEFAULT_COVER_OUTPUT, 'tool': None}
    cover_config.update(config.get('test_coverage') or {})
    return cover_config


def app_path(config: Dict[str, Any]) -> Path:
    return build_path('lib', config['app'])


def ebin_path(config: Dict[str, Any]) -> Path:
    """Directory holding the compiled application and test modules"""
    return app_path(config) / 'ebin'


def code_paths(config: Dict[str, Any]) -> List[str]:
    """Extra code paths for the compiler and the engine.

    Defaults to the ebin directory of every dependency in the build tree,
    which is where cth_readable is expected to live.
    """
    if config.get('code_paths') is not None:
        return [str(p) for p in config['code_paths']]
    own = str(ebin_path(config))
    return [str(p) for p in sorted(build_path('lib').glob('*/ebin')) if str(p) != own]


def augment_build_config(config: Dict[str, Any], options) -> Dict[str, Any]:
    """Return a copy of ``config`` set up to compile the test suites.

    Adds the test directory to the compile paths, the TEST define and the
    cth_readable parse transform. Values already present are not added again,
    so applying this twice gives the same result as applying it once.
    """
    augmented = copy.deepcopy(config)

    erlc_paths = list(augmented.get('erlc_paths') or [])
    if options.dir not in erlc_paths:
        erlc_paths.append(options.dir)
    augmented['erlc_paths'] = erlc_paths

    erlc_options = list(augmented.get('erlc_options') or [])
    if READABLE_TRANSFORM not in erlc_options:
        erlc_options.append(READABLE_TRANSFORM)
    if TEST_DEFINE not in erlc_options:
        erlc_options.insert(0, TEST_DEFINE)
    augmented['erlc_options'] = erlc_options

    return augmented


def clear_config_cache():
    """Clear the configuration cache (useful for testing)"""
    with _cache_lock:
        _config_cache.clear()
