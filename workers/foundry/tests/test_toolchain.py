"""
test_toolchain — go/git discovery.
"""
import pytest

from foundry.core import toolchain
from foundry.core.toolchain import check_toolchain, parse_go_version
from foundry.errors import GitNotFoundError, PrerequisiteError, ToolchainNotFoundError


@pytest.mark.parametrize("output, expected", [
    ("go version go1.22.2 linux/amd64", "1.22.2"),
    ("go version go1.21rc2 darwin/arm64", "1.21rc2"),
    ("go version devel", None),
    ("gcc version 13", None),
    ("", None),
])
def test_parse_go_version(output, expected):
    assert parse_go_version(output) == expected


def test_missing_go(monkeypatch):
    monkeypatch.setattr(toolchain, "go_version", lambda: None)
    monkeypatch.setattr(toolchain, "git_version", lambda: "git version 2.43.0")
    with pytest.raises(ToolchainNotFoundError):
        check_toolchain()


def test_missing_git(monkeypatch):
    monkeypatch.setattr(toolchain, "go_version", lambda: "1.22.2")
    monkeypatch.setattr(toolchain, "git_version", lambda: None)
    with pytest.raises(GitNotFoundError) as exc_info:
        check_toolchain()
    assert isinstance(exc_info.value, PrerequisiteError)


def test_probe_missing_binary(monkeypatch):
    monkeypatch.setattr(toolchain.shutil, "which", lambda name: None)
    assert toolchain.go_version() is None
    assert toolchain.git_version() is None


def test_real_toolchain(go_ok):
    ident = check_toolchain()
    assert ident.go_version
    assert ident.git_version.startswith("git version")
