import os

import pytest
from unittest.mock import patch

from exceptions import FixtureCopyError, LogDirError
from options import CtOptions
from suites import all_suites, copy_data_dir, make_log_dir, prepare, resolve_suites


class TestResolveSuites:

    def test_explicit_selection_is_returned_verbatim(self, erlang_project):
        options = CtOptions(suite=("zeta_SUITE", "missing_SUITE"))

        assert resolve_suites(options) == ["zeta_SUITE", "missing_SUITE"]

    def test_discovers_every_suite_once(self, erlang_project):
        suites = resolve_suites(CtOptions(dir="test"))

        # Order follows the directory listing, so compare as a multiset
        assert sorted(suites) == ["bar_SUITE", "foo_SUITE"]
        assert len(suites) == len(set(suites))

    def test_non_suite_files_are_ignored(self, erlang_project):
        (erlang_project / "test" / "notes_SUITE.txt").write_text("")
        (erlang_project / "test" / "dir_SUITE.erl").mkdir()

        assert sorted(all_suites("test")) == ["bar_SUITE", "foo_SUITE"]

    def test_missing_test_dir_yields_nothing(self, clean_work_dir):
        assert resolve_suites(CtOptions(dir="nope")) == []


class TestMakeLogDir:

    def test_creates_nested_dirs(self, clean_work_dir):
        make_log_dir("_build/test/ct_logs")

        assert (clean_work_dir / "_build" / "test" / "ct_logs").is_dir()

    def test_existing_dir_is_fine(self, clean_work_dir):
        make_log_dir("logs")
        make_log_dir("logs")

        assert (clean_work_dir / "logs").is_dir()

    def test_failure_is_reported(self, clean_work_dir):
        # Given: a file where the log dir's parent should be
        (clean_work_dir / "blocked").write_text("")

        with pytest.raises(LogDirError) as exc_info:
            make_log_dir("blocked/logs")

        assert "blocked/logs" in str(exc_info.value)
        assert str(clean_work_dir) in str(exc_info.value)


class TestCopyDataDir:

    def test_missing_data_dir_is_not_an_error(self, erlang_project):
        assert copy_data_dir("foo_SUITE", "test", "ebin") is False
        assert not (erlang_project / "ebin" / "foo_SUITE_data").exists()

    def test_copies_fixture_tree(self, erlang_project):
        # Given: a data dir with a nested fixture
        data_dir = erlang_project / "test" / "foo_SUITE_data" / "nested"
        data_dir.mkdir(parents=True)
        (data_dir / "input.json").write_text("{}")

        # When: copying it
        assert copy_data_dir("foo_SUITE", "test", "ebin") is True

        # Then: the tree is reproduced under ebin
        assert (erlang_project / "ebin" / "foo_SUITE_data" / "nested" / "input.json").read_text() == "{}"

    def test_copy_over_previous_run(self, erlang_project):
        data_dir = erlang_project / "test" / "foo_SUITE_data"
        data_dir.mkdir()
        (data_dir / "a.txt").write_text("new")
        stale = erlang_project / "ebin" / "foo_SUITE_data"
        stale.mkdir(parents=True)
        (stale / "a.txt").write_text("old")

        copy_data_dir("foo_SUITE", "test", "ebin")

        assert (stale / "a.txt").read_text() == "new"

    def test_other_failures_name_the_suite(self, erlang_project):
        (erlang_project / "test" / "foo_SUITE_data").mkdir()

        with patch("suites.shutil.copytree", side_effect=PermissionError(13, "Permission denied")):
            with pytest.raises(FixtureCopyError) as exc_info:
                copy_data_dir("foo_SUITE", "test", "ebin")

        assert exc_info.value.suite == "foo_SUITE"
        assert "foo_SUITE" in str(exc_info.value)
        assert "Permission denied" in str(exc_info.value)

    def test_missing_destination_file_is_not_mistaken_for_missing_source(self, erlang_project):
        (erlang_project / "test" / "foo_SUITE_data").mkdir()
        error = FileNotFoundError(2, "No such file or directory", os.path.join("ebin", "elsewhere"))

        with patch("suites.shutil.copytree", side_effect=error):
            with pytest.raises(FixtureCopyError):
                copy_data_dir("foo_SUITE", "test", "ebin")

    @pytest.mark.skipif(
        not hasattr(os, "geteuid") or os.geteuid() == 0,
        reason="permission bits are not enforced for root",
    )
    def test_unwritable_destination(self, erlang_project):
        (erlang_project / "test" / "foo_SUITE_data").mkdir()
        (erlang_project / "test" / "foo_SUITE_data" / "f.txt").write_text("x")
        ebin = erlang_project / "ebin"
        ebin.mkdir()
        ebin.chmod(0o500)
        try:
            with pytest.raises(FixtureCopyError, match="foo_SUITE"):
                copy_data_dir("foo_SUITE", "test", str(ebin))
        finally:
            ebin.chmod(0o700)


class TestPrepare:

    def test_creates_log_dir_and_copies_fixtures(self, erlang_project):
        (erlang_project / "test" / "bar_SUITE_data").mkdir()
        (erlang_project / "test" / "bar_SUITE_data" / "seed.txt").write_text("1")
        options = CtOptions(log_dir="out/logs", dir="test")

        prepare(["foo_SUITE", "bar_SUITE"], options, "ebin")

        assert (erlang_project / "out" / "logs").is_dir()
        assert (erlang_project / "ebin" / "bar_SUITE_data" / "seed.txt").exists()
        assert not (erlang_project / "ebin" / "foo_SUITE_data").exists()
