"""
Shared pytest fixtures for foundry tests.

Provides a file:// GOPROXY populated with tiny fake modules so that real
builds run offline:

  - go.k6.io/k6        v0.1.0, v0.2.0  (package cmd with Execute())
  - go.k6.io/k6ext     v0.1.0
  - go.k6.io/k6ext/v2  v2.0.0

Requirements for the end-to-end tests:
  - go and git must be on PATH

Tests that need them are skipped otherwise.
"""
import json
import os
import shutil
import subprocess
import textwrap
import zipfile
from pathlib import Path
from typing import Dict

import pytest

from foundry.io.receipt import ToolchainIdentity
from foundry.policy.options import GoOpts, NativeBuilderOpts

# (module path, version) → {relative file name: content}
K6_SOURCES = {
    "go.mod": "module go.k6.io/k6\n\ngo 1.19\n",
    "cmd/cmd.go": textwrap.dedent("""\
        package cmd

        import "fmt"

        func Execute() {
        	fmt.Println("k6")
        }
    """),
}

K6EXT_SOURCES = {
    "go.mod": "module go.k6.io/k6ext\n\ngo 1.19\n",
    "k6ext.go": "package k6ext\n",
}

K6EXT_V2_SOURCES = {
    "go.mod": "module go.k6.io/k6ext/v2\n\ngo 1.19\n",
    "k6ext.go": "package k6ext\n",
}

PROXY_MODULES = [
    ("go.k6.io/k6", "v0.1.0", K6_SOURCES),
    ("go.k6.io/k6", "v0.2.0", K6_SOURCES),
    ("go.k6.io/k6ext", "v0.1.0", K6EXT_SOURCES),
    ("go.k6.io/k6ext/v2", "v2.0.0", K6EXT_V2_SOURCES),
]

INFO_TIME = "2024-01-01T00:00:00Z"


def _go_available() -> bool:
    """Check if go and git are in PATH."""
    return shutil.which("go") is not None and shutil.which("git") is not None


def add_mod_version(proxy: Path, path: str, version: str, sources: Dict[str, str]) -> None:
    """Publish ``path@version`` in a file-based GOPROXY directory.

    Writes ``@v/<version>.{info,mod,zip}``, updates ``@v/list`` and
    ``@latest``.
    """
    mod_dir = proxy / path / "@v"
    mod_dir.mkdir(parents=True, exist_ok=True)

    prefix = f"{path}@{version}/"
    with zipfile.ZipFile(mod_dir / f"{version}.zip", "w") as zf:
        for name, content in sources.items():
            zf.writestr(prefix + name, content)

    info = json.dumps({"Version": version, "Time": INFO_TIME})
    (mod_dir / f"{version}.info").write_text(info)
    (mod_dir / f"{version}.mod").write_text(sources["go.mod"])

    versions = sorted(p.stem for p in mod_dir.glob("*.info"))
    (mod_dir / "list").write_text("\n".join(versions) + "\n")
    (proxy / path / "@latest").write_text(
        json.dumps({"Version": versions[-1], "Time": INFO_TIME})
    )


def write_sources(root: Path, sources: Dict[str, str]) -> Path:
    """Write a module's sources into ``root`` (a local checkout)."""
    for name, content in sources.items():
        f = root / name
        f.parent.mkdir(parents=True, exist_ok=True)
        f.write_text(content)
    return root


@pytest.fixture(scope="session")
def go_ok():
    """Skip tests if the go toolchain or git is not available."""
    if not _go_available():
        pytest.skip("go and git are required - install them to run these tests")


@pytest.fixture(scope="session")
def goproxy(tmp_path_factory, go_ok) -> Path:
    """Session-scoped file GOPROXY with the fake modules."""
    proxy = tmp_path_factory.mktemp("goproxy")
    for path, version, sources in PROXY_MODULES:
        add_mod_version(proxy, path, version, sources)
    return proxy


@pytest.fixture(scope="session")
def modcache(tmp_path_factory, go_ok):
    """Shared module cache; removed with go clean (files are read-only)."""
    cache = tmp_path_factory.mktemp("modcache")
    yield cache
    subprocess.run(
        [shutil.which("go"), "clean", "-modcache"],
        env={**os.environ, "GOMODCACHE": str(cache)},
        capture_output=True,
        timeout=60,
    )


@pytest.fixture
def proxy_opts(goproxy, modcache, tmp_path) -> NativeBuilderOpts:
    """Builder options resolving everything from the local proxy."""
    go = GoOpts(
        copy_env=True,
        goproxy=f"file://{goproxy}",
        gonoproxy="none",
        goprivate="go.k6.io",
        gomodcache=str(modcache),
        get_timeout=120,
        build_timeout=300,
    )
    workdirs = tmp_path / "work"
    workdirs.mkdir()
    return NativeBuilderOpts(go=go, workdir_root=str(workdirs))


@pytest.fixture
def toolchain() -> ToolchainIdentity:
    """A toolchain identity that does not require go to be installed."""
    return ToolchainIdentity(go_version="1.22.2", git_version="git version 2.43.0")


@pytest.fixture
def local_k6ext(tmp_path) -> Path:
    """A local checkout of go.k6.io/k6ext."""
    return write_sources(tmp_path / "k6ext", K6EXT_SOURCES)
