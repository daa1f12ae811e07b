from __future__ import annotations

import textwrap
from pathlib import Path

import pytest

from staleguard.config import (
    DEFAULT_CACHE_DIRNAME,
    MissingFilePolicy,
    StaleguardConfig,
    find_config,
    load_config,
)
from staleguard.errors import ConfigurationError


def test_defaults_without_config_file() -> None:
    config = load_config(None)

    assert config.cache_dirname == DEFAULT_CACHE_DIRNAME
    assert config.missing_files is MissingFilePolicy.DIRTY
    assert config.coverage.include == []


def test_load_config_reads_yaml(tmp_path: Path) -> None:
    path = tmp_path / "staleguard.yaml"
    path.write_text(
        textwrap.dedent(
            """
            cache_dirname: .staleguard
            missing_files: error
            skip_announcement: clean
            coverage:
              omit:
                - "*/migrations/*"
            """
        ).strip()
        + "\n",
        encoding="utf-8",
    )

    config = load_config(path)

    assert config.cache_dirname == ".staleguard"
    assert config.missing_files is MissingFilePolicy.ERROR
    assert config.skip_announcement == "clean"
    assert config.coverage.omit == ["*/migrations/*"]


def test_empty_file_yields_defaults(tmp_path: Path) -> None:
    path = tmp_path / "staleguard.yaml"
    path.write_text("", encoding="utf-8")

    assert load_config(path) == StaleguardConfig()


@pytest.mark.parametrize(
    "content",
    [
        "- not\n- a mapping\n",
        "cache_dirname: [unterminated\n",
        "unknown_key: 1\n",
        "missing_files: sometimes\n",
        "cache_dirname: nested/dir\n",
    ],
)
def test_invalid_config_raises_configuration_error(tmp_path: Path, content: str) -> None:
    path = tmp_path / "staleguard.yaml"
    path.write_text(content, encoding="utf-8")

    with pytest.raises(ConfigurationError) as excinfo:
        load_config(path)

    assert str(path) in str(excinfo.value)


def test_missing_config_file_is_an_error(tmp_path: Path) -> None:
    with pytest.raises(ConfigurationError):
        load_config(tmp_path / "absent.yaml")


def test_find_config_walks_up(tmp_path: Path) -> None:
    config_path = tmp_path / "staleguard.yaml"
    config_path.write_text("cache_dirname: .cache\n", encoding="utf-8")
    nested = tmp_path / "a" / "b"
    nested.mkdir(parents=True)

    assert find_config(nested) == config_path.resolve()
