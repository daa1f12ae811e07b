from __future__ import annotations

import os
import textwrap
import time
from pathlib import Path

import pytest

PLUGIN_ARGS = ("-p", "staleguard.pytest_plugin")


@pytest.fixture()
def project(pytester: pytest.Pytester) -> pytest.Pytester:
    pytester.makepyfile(
        calc=textwrap.dedent(
            """
            def add(left, right):
                return left + right


            def sub(left, right):
                return left - right
            """
        ),
        test_calc=textwrap.dedent(
            """
            from calc import add


            def test_add():
                assert add(1, 2) == 3


            def test_broken():
                assert add(1, 1) == 3
            """
        ),
    )
    return pytester


def _age_sources(root: Path) -> None:
    past = time.time() - 120
    for path in root.glob("*.py"):
        os.utime(path, (past, past))


def _status_files(root: Path) -> dict[int, str]:
    statuses: dict[int, str] = {}
    for status_file in (root / ".coverage" / "test_calc.py").glob("*/last_run_status"):
        statuses[int(status_file.parent.name)] = status_file.read_text(encoding="utf-8").strip()
    return statuses


def test_plugin_is_inactive_without_flag(project: pytest.Pytester) -> None:
    result = project.runpytest(*PLUGIN_ARGS)

    result.assert_outcomes(passed=1, failed=1)
    assert not (project.path / ".coverage").exists()


def test_first_run_records_status_and_sources(project: pytest.Pytester) -> None:
    result = project.runpytest(*PLUGIN_ARGS, "--staleguard")

    result.assert_outcomes(passed=1, failed=1)
    result.stdout.fnmatch_lines(["*watched 2 test(s), skipped 0 clean test(s)*"])
    assert sorted(_status_files(project.path).values()) == ["failed", "passed"]

    cache_root = project.path / ".coverage" / "test_calc.py"
    for sources in cache_root.glob("*/covered_source_files"):
        listed = sources.read_text(encoding="utf-8").splitlines()
        assert listed[0] == "test_calc.py"
        assert "calc.py" in listed
        assert not any("staleguard" in entry for entry in listed)


def test_clean_tests_are_skipped_and_failures_rerun(project: pytest.Pytester) -> None:
    project.runpytest(*PLUGIN_ARGS, "--staleguard")
    _age_sources(project.path)

    result = project.runpytest(*PLUGIN_ARGS, "--staleguard-skip")

    result.assert_outcomes(skipped=1, failed=1)
    result.stdout.fnmatch_lines(["*skipped 1 clean test(s)*"])


def test_editing_a_source_file_reruns_dependent_tests(project: pytest.Pytester) -> None:
    project.runpytest(*PLUGIN_ARGS, "--staleguard")
    _age_sources(project.path)

    future = time.time() + 60
    os.utime(project.path / "calc.py", (future, future))

    result = project.runpytest(*PLUGIN_ARGS, "--staleguard-skip")

    result.assert_outcomes(passed=1, failed=1)


def test_advisory_mode_announces_but_runs(project: pytest.Pytester) -> None:
    project.runpytest(*PLUGIN_ARGS, "--staleguard")
    _age_sources(project.path)

    result = project.runpytest(*PLUGIN_ARGS, "--staleguard", "-s")

    result.assert_outcomes(passed=1, failed=1)
    result.stdout.fnmatch_lines(["*Skipping clean test*"])


def test_parametrized_failure_is_not_hidden_by_later_pass(pytester: pytest.Pytester) -> None:
    pytester.makepyfile(
        test_calc=textwrap.dedent(
            """
            import pytest


            @pytest.mark.parametrize("value", [2, 1])
            def test_value(value):
                assert value == 1
            """
        )
    )

    result = pytester.runpytest(*PLUGIN_ARGS, "--staleguard")

    result.assert_outcomes(passed=1, failed=1)
    assert list(_status_files(pytester.path).values()) == ["failed"]


def test_class_members_are_judged_independently(pytester: pytest.Pytester) -> None:
    pytester.makepyfile(
        test_calc=textwrap.dedent(
            """
            import pytest


            class TestShared:
                @pytest.fixture(scope="class")
                def base(self):
                    return 1

                def test_passes(self, base):
                    assert base == 1

                def test_fails(self, base):
                    assert base == 2
            """
        )
    )
    pytester.runpytest(*PLUGIN_ARGS, "--staleguard")
    _age_sources(pytester.path)

    result = pytester.runpytest(*PLUGIN_ARGS, "--staleguard-skip")

    result.assert_outcomes(skipped=1, failed=1)


def test_invalid_config_is_a_usage_error(project: pytest.Pytester) -> None:
    result = project.runpytest(*PLUGIN_ARGS, "--staleguard", "--staleguard-config", "missing.yaml")

    assert result.ret == pytest.ExitCode.USAGE_ERROR
    result.stderr.fnmatch_lines(["*Config file not found*"])


def test_configured_cache_dirname_is_used(project: pytest.Pytester) -> None:
    project.makefile(".yaml", staleguard="cache_dirname: .staleguard\n")

    result = project.runpytest(*PLUGIN_ARGS, "--staleguard")

    result.assert_outcomes(passed=1, failed=1)
    result.stdout.fnmatch_lines(["*staleguard: advisory, cache dir .staleguard*"])
    assert (project.path / ".staleguard" / "test_calc.py").is_dir()
