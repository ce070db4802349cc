"""
Generated Go sources for the build workspace.
"""
from __future__ import annotations

from pathlib import Path

MAIN_FILE = "main.go"

MAIN_TEMPLATE = """\
package main

import (
	basecmd "{base_path}/cmd"
)

func main() {{
	basecmd.Execute()
}}
"""

IMPORT_TEMPLATE = """\
package main

import _ "{import_path}"
"""


def import_file_name(import_path: str) -> str:
    """File name for the blank import of ``import_path`` (``a/b/c`` → ``a_b_c.go``)."""
    return import_path.replace("/", "_") + ".go"


def write_main(workdir: Path, base_path: str) -> Path:
    """Write main.go invoking the base program's ``cmd.Execute``."""
    path = workdir / MAIN_FILE
    path.write_text(MAIN_TEMPLATE.format(base_path=base_path))
    return path


def write_import(workdir: Path, import_path: str) -> Path:
    """Write a file whose only purpose is to link ``import_path`` in."""
    path = workdir / import_file_name(import_path)
    path.write_text(IMPORT_TEMPLATE.format(import_path=import_path))
    return path
