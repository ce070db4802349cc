"""
test_manifest — go.mod reading and receipt serialization.
"""
import json
import textwrap

from foundry.io.manifest import parse_manifest, read_manifest
from foundry.io.receipt import (
    ArtifactMeta,
    BuildReceipt,
    RequestedModule,
    ResolvedRequirement,
    TargetInfo,
    ToolchainIdentity,
    hash_file,
)
from foundry.io.writer import write_receipt

GO_MOD = textwrap.dedent("""\
    module k6

    go 1.22.2

    require go.k6.io/k6 v0.2.0

    require (
    	go.k6.io/k6ext v0.1.0
    	golang.org/x/text v0.14.0 // indirect
    )

    replace go.k6.io/k6ext => /tmp/k6ext

    replace (
    	go.k6.io/other v1.0.0 => github.com/me/other v1.0.1
    )
""")


class TestParseManifest:

    def test_header(self):
        m = parse_manifest(GO_MOD)
        assert m.module == "k6"
        assert m.go_version == "1.22.2"

    def test_requirements(self):
        m = parse_manifest(GO_MOD)
        assert [(r.path, r.version, r.indirect) for r in m.requirements] == [
            ("go.k6.io/k6", "v0.2.0", False),
            ("go.k6.io/k6ext", "v0.1.0", False),
            ("golang.org/x/text", "v0.14.0", True),
        ]
        assert m.requirement("go.k6.io/k6").version == "v0.2.0"
        assert m.requirement("missing") is None

    def test_replacements(self):
        m = parse_manifest(GO_MOD)
        first, second = m.replacements
        assert (first.path, first.version, first.replace_path, first.replace_version) == (
            "go.k6.io/k6ext", None, "/tmp/k6ext", None,
        )
        assert (second.path, second.version, second.replace_path, second.replace_version) == (
            "go.k6.io/other", "v1.0.0", "github.com/me/other", "v1.0.1",
        )

    def test_empty(self):
        m = parse_manifest("module k6\n")
        assert m.requirements == []
        assert m.replacements == []

    def test_read(self, tmp_path):
        p = tmp_path / "go.mod"
        p.write_text(GO_MOD)
        assert read_manifest(p).requirement("go.k6.io/k6ext").version == "v0.1.0"


def _receipt(tmp_path) -> BuildReceipt:
    binary = tmp_path / "k6"
    binary.write_bytes(b"\x7fELF fake")
    return BuildReceipt(
        created_at="2024-01-01T00:00:00+00:00",
        finished_at="2024-01-01T00:00:05+00:00",
        target=TargetInfo(os="linux", arch="amd64"),
        toolchain=ToolchainIdentity(go_version="1.22.2", git_version="git version 2.43.0"),
        base=RequestedModule(path="go.k6.io/k6", version="latest", import_path="go.k6.io/k6"),
        requirements=[ResolvedRequirement(path="go.k6.io/k6", version="v0.2.0")],
        artifact=ArtifactMeta(sha256=hash_file(binary), size_bytes=binary.stat().st_size),
    )


class TestReceipt:

    def test_resolved_version(self, tmp_path):
        r = _receipt(tmp_path)
        assert r.resolved_version("go.k6.io/k6") == "v0.2.0"
        assert r.resolved_version("go.k6.io/k6ext") is None

    def test_builder_identity(self, tmp_path):
        r = _receipt(tmp_path)
        assert r.builder.name == "foundry_native"

    def test_write(self, tmp_path):
        r = _receipt(tmp_path)
        out = write_receipt(r, tmp_path / "out" / "receipt.json")
        data = json.loads(out.read_text())
        assert data["base"]["path"] == "go.k6.io/k6"
        assert data["artifact"]["sha256"] == r.artifact.sha256
        assert BuildReceipt.model_validate(data) == r
