"""pytest integration.

Enable with ``pytest -p staleguard.pytest_plugin --staleguard``.  Every test
item is watched as a scenario identified by its file and definition line.
With ``--staleguard-skip`` clean tests are skipped outright and their previous
records are left untouched.

Items are independent: no item depends on another, so shared fixtures and
setup in conftest modules or class scopes are not modelled as backgrounds.
Each item's verdict comes from its own records, which still include every
source file its fixtures touched while it ran.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Dict, Iterator, Optional, Set

import pytest

from .adapters import ScenarioAdapter
from .config import find_config, load_config
from .errors import ConfigurationError
from .identity import TestIdentifier
from .recording import relative_to_cwd
from .session import Session

LOGGER = logging.getLogger(__name__)

PLUGIN_NAME = "staleguard-session"


class TerminalVisitor:
    """Visitor writing announcements to the terminal reporter."""

    def __init__(self, config: pytest.Config) -> None:
        self._config = config

    def announce(self, message: str) -> None:
        reporter = self._config.pluginmanager.get_plugin("terminalreporter")
        if reporter is None:
            LOGGER.info(message)
            return
        reporter.write_line(message)


class StaleguardPlugin:
    """Per-run state registered with pytest when staleguard is enabled."""

    def __init__(self, config: pytest.Config, session: Session, *, skip_clean: bool) -> None:
        self.config = config
        self.session = session
        self.skip_clean = skip_clean
        self.visitor = TerminalVisitor(config)
        self.watched = 0
        self.skipped: list[str] = []
        self._active = False
        # Parametrized items share a definition line; merge their outcomes.
        self._seen_files: Dict[TestIdentifier, tuple[str, ...]] = {}
        self._failed: Set[TestIdentifier] = set()

    def scenario_for(self, item: pytest.Item) -> ScenarioAdapter:
        relative, lineno, _ = item.location
        line = (lineno or 0) + 1
        test_file = relative_to_cwd(Path(self.config.rootpath) / relative)
        # Items are independent, so no background.
        return ScenarioAdapter(self.session, test_file, line, self.visitor)

    @pytest.hookimpl(hookwrapper=True)
    def pytest_runtest_protocol(self, item: pytest.Item, nextitem: Optional[pytest.Item]) -> Iterator[None]:
        scenario = self.scenario_for(item)
        identifier = scenario.identity()

        if self.skip_clean and identifier not in self._seen_files and scenario.can_skip():
            item.add_marker(pytest.mark.skip(reason=self.session.config.skip_announcement))
            self.skipped.append(item.nodeid)
            yield
            return

        with self.session.started(identifier, self.visitor) as monitor:
            for source_file in self._seen_files.get(identifier, ()):
                monitor.record(source_file)
            if identifier in self._failed:
                monitor.fail()
            self._active = True
            try:
                yield
            finally:
                self._active = False
            self._seen_files[identifier] = monitor.covered_files
            if monitor.failed:
                self._failed.add(identifier)
        self.watched += 1

    def pytest_runtest_logreport(self, report: pytest.TestReport) -> None:
        if self._active and report.failed:
            self.session.fail_current_test()

    def pytest_report_header(self) -> str:
        mode = "skip clean tests" if self.skip_clean else "advisory"
        return f"staleguard: {mode}, cache dir {self.session.config.cache_dirname}"

    def pytest_terminal_summary(self, terminalreporter) -> None:
        terminalreporter.write_sep("-", "staleguard")
        terminalreporter.write_line(f"watched {self.watched} test(s), skipped {len(self.skipped)} clean test(s)")


def pytest_addoption(parser: pytest.Parser) -> None:
    group = parser.getgroup("staleguard", "re-run only tests affected by changes")
    group.addoption(
        "--staleguard",
        action="store_true",
        default=False,
        help="Record touched source files and run status for every test.",
    )
    group.addoption(
        "--staleguard-skip",
        action="store_true",
        default=False,
        help="Skip tests whose recorded source files are unchanged since their last passing run.",
    )
    group.addoption(
        "--staleguard-config",
        default=None,
        help="Path to a staleguard.yaml configuration file.",
    )


def pytest_configure(config: pytest.Config) -> None:
    skip_clean = bool(config.getoption("staleguard_skip"))
    if not (config.getoption("staleguard") or skip_clean):
        return

    config_path = config.getoption("staleguard_config") or find_config(config.rootpath)
    try:
        settings = load_config(config_path)
    except ConfigurationError as error:
        raise pytest.UsageError(str(error)) from error

    plugin = StaleguardPlugin(config, Session(settings), skip_clean=skip_clean)
    config.pluginmanager.register(plugin, PLUGIN_NAME)
