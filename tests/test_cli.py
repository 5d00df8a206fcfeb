"""Tests for the command line entry point."""

import io
import os
import stat
import textwrap

import pytest

from expandview.cli import build_parser, main, render_options
from expandview.config import ExpandConfig
from expandview.options import Coloring

SOURCE = "mod outer { pub fn foo() -> u32 { 1 } }\npub fn foo() -> u32 { 2 }\n"


@pytest.fixture(autouse=True)
def isolated(monkeypatch, tmp_path):
    for name in ("EXPANDVIEW_THEME", "EXPANDVIEW_COLOR", "EXPANDVIEW_PAGER", "EXPANDVIEW_RUSTFMT", "NO_COLOR", "CARGO"):
        monkeypatch.delenv(name, raising=False)
    home = tmp_path / "cargo-home"
    home.mkdir()
    monkeypatch.setenv("CARGO_HOME", str(home))
    return home


@pytest.fixture
def expanded_file(tmp_path):
    path = tmp_path / "expanded.rs"
    path.write_text(SOURCE)
    return str(path)


def _fake_cargo(tmp_path, body):
    script = tmp_path / "cargo"
    script.write_text("#!/bin/sh\n" + textwrap.dedent(body))
    script.chmod(script.stat().st_mode | stat.S_IXUSR)
    return str(script)


class TestParser:
    def test_item_and_flags(self):
        ns = build_parser().parse_args(["outer::foo", "--lib", "-p", "core", "-Z", "a", "-Z", "b", "--no-pager"])
        assert ns.item == "outer::foo"
        assert ns.lib and ns.package == "core"
        assert ns.unstable_flags == ["a", "b"]
        assert ns.paging is False

    def test_bare_target_flags(self):
        ns = build_parser().parse_args(["--bin", "--test", "-p", "--example", "demo"])
        assert ns.bin == "" and ns.test == "" and ns.package == ""
        assert ns.example == "demo"
        assert ns.bench is None

    def test_render_options_precedence(self):
        ns = build_parser().parse_args(["--theme", "nord", "--quiet-degraded"])
        config = ExpandConfig(theme="monokai", color="never", paging=True, pager="most")
        options = render_options(ns, config)
        assert options.theme == "nord"
        assert options.color is Coloring.NEVER
        assert options.paging is True
        assert options.pager_command == "most"
        assert options.warn_on_degraded is False
        assert options.strip_macros is True

    def test_keep_macros(self):
        ns = build_parser().parse_args(["--keep-macros", "--pager"])
        options = render_options(ns, ExpandConfig())
        assert options.strip_macros is False
        assert options.paging is True


class TestMain:
    def test_themes(self, capsys):
        assert main(["--themes"]) == 0
        out = capsys.readouterr().out.splitlines()
        assert "none" in out
        assert "monokai" in out

    def test_subcommand_name_is_dropped(self, capsys):
        assert main(["expandview", "--themes"]) == 0
        assert "none" in capsys.readouterr().out

    def test_input_file(self, expanded_file, capsys):
        assert main(["--input", expanded_file, "--color", "never", "outer::foo"]) == 0
        out = capsys.readouterr().out
        assert "fn foo() -> u32" in out
        assert "\n    1\n" in out
        assert "{ 2 }" not in out

    def test_input_stdin(self, monkeypatch, capsys):
        monkeypatch.setattr("sys.stdin", io.StringIO(SOURCE))
        assert main(["--input", "-", "--ugly", "foo"]) == 0
        assert capsys.readouterr().out == "pub fn foo() -> u32 { 2 }\n"

    def test_missing_item(self, expanded_file, capsys):
        assert main(["--input", expanded_file, "outer::nope"]) == 1
        assert capsys.readouterr().err.strip().endswith("ERROR: no such item: outer::nope")

    def test_invalid_item(self, expanded_file, capsys):
        assert main(["--input", expanded_file, "outer::"]) == 1
        assert "ERROR: empty segment" in capsys.readouterr().err

    def test_unknown_theme(self, expanded_file, capsys):
        assert main(["--input", expanded_file, "--theme", "nope"]) == 1
        captured = capsys.readouterr()
        assert captured.out == ""
        assert "unknown theme 'nope'" in captured.err

    def test_missing_input_file(self, tmp_path, capsys):
        assert main(["--input", str(tmp_path / "absent.rs")]) == 1
        assert "ERROR:" in capsys.readouterr().err

    def test_rustfmt_required_by_config(self, isolated, expanded_file, monkeypatch, capsys):
        (isolated / "config.toml").write_text("[expand]\nrustfmt = true\n")
        monkeypatch.setenv("RUSTFMT", "")
        assert main(["--input", expanded_file]) == 1
        assert "rustfmt is not found" in capsys.readouterr().err


@pytest.mark.skipif(os.name == "nt", reason="fake cargo is a shell script")
class TestMainWithCargo:
    def test_expands_crate(self, tmp_path, monkeypatch, capsys):
        monkeypatch.setenv("CARGO", _fake_cargo(tmp_path, 'echo "fn main() {}"\n'))
        assert main(["--color", "never"]) == 0
        assert "fn main() {}" in capsys.readouterr().out

    def test_warnings_from_successful_build(self, tmp_path, monkeypatch, capsys):
        body = 'echo "warning: unused variable" >&2\necho "fn main() {}"\n'
        monkeypatch.setenv("CARGO", _fake_cargo(tmp_path, body))
        assert main(["--color", "never"]) == 0
        captured = capsys.readouterr()
        assert captured.err == "warning: unused variable\n"
        assert "fn main() {}" in captured.out

    def test_bare_bin_is_passed_to_cargo(self, tmp_path, monkeypatch, capsys):
        monkeypatch.setenv("CARGO", _fake_cargo(tmp_path, 'echo "fn main() {} // $*"\n'))
        assert main(["--bin", "--ugly", "--color", "never"]) == 0
        assert "--bin --color never --" in capsys.readouterr().out

    def test_toolchain_failure_passthrough(self, tmp_path, monkeypatch, capsys):
        monkeypatch.setenv("CARGO", _fake_cargo(tmp_path, 'echo "error: boom" >&2\nexit 101\n'))
        assert main([]) == 101
        captured = capsys.readouterr()
        assert captured.err == "error: boom\n"
        assert captured.out == ""

    def test_no_output(self, tmp_path, monkeypatch, capsys):
        monkeypatch.setenv("CARGO", _fake_cargo(tmp_path, 'echo "warning: nothing" >&2\n'))
        assert main([]) == 1
        err = capsys.readouterr().err
        assert err.startswith("warning: nothing\n")
        assert "ERROR: rustc produced no expanded output" in err

    def test_verbose_prints_command(self, tmp_path, monkeypatch, capsys):
        cargo = _fake_cargo(tmp_path, 'echo "fn main() {}"\n')
        monkeypatch.setenv("CARGO", cargo)
        assert main(["--verbose", "--color", "never"]) == 0
        assert f"Running `{cargo} rustc --profile check --verbose --color never" in capsys.readouterr().err
