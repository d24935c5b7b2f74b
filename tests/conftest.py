import pytest
import yaml
import os

from config_utils import clear_config_cache


@pytest.fixture(autouse=True)
def clean_work_dir(tmp_path, monkeypatch):
    """Automatically changes to a clean working directory for each test."""
    original_cwd = os.getcwd()
    test_dir = tmp_path / "test_workspace"
    test_dir.mkdir()

    monkeypatch.chdir(test_dir)

    yield test_dir

    os.chdir(original_cwd)


@pytest.fixture(autouse=True)
def clean_config_cache():
    """Project files are cached per path; start every test from scratch."""
    clear_config_cache()
    yield
    clear_config_cache()


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    """Cleans environment variables that might leak between tests."""
    for var in ["CT_ENV", "CT_RUNNER_DEBUG"]:
        monkeypatch.delenv(var, raising=False)

    yield


@pytest.fixture
def erlang_project(clean_work_dir):
    """An Erlang project in the working directory with two suites and no fixtures."""
    (clean_work_dir / "src").mkdir()
    (clean_work_dir / "src" / "demo.erl").write_text("-module(demo).\n")

    test_dir = clean_work_dir / "test"
    test_dir.mkdir()
    for suite in ("foo_SUITE", "bar_SUITE"):
        (test_dir / f"{suite}.erl").write_text(f"-module({suite}).\n")
    (test_dir / "helper.erl").write_text("-module(helper).\n")

    return clean_work_dir


@pytest.fixture
def project_file(clean_work_dir):
    """Factory writing ct_project.yaml into the working directory."""

    def _write(config_data):
        path = clean_work_dir / "ct_project.yaml"
        with open(path, "w") as f:
            yaml.dump(config_data, f)
        return str(path)

    return _write


@pytest.fixture
def base_project_dict():
    """Returns a base project configuration dictionary for tests."""
    return {
        "app": "demo",
        "erlc_paths": ["src"],
        "erlc_options": ["+debug_info"],
        "erlc_include_path": "include",
        "test_coverage": {},
        "ct": {},
        "engine": {},
        "code_paths": [],
    }
