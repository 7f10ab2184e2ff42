"""Tests for relkit.shell.runner module."""

from __future__ import annotations

import json
from pathlib import Path

import pytest

from relkit.core.config import ReleaseConfig
from relkit.core.context import ReleaseContext
from relkit.core.result import Err, Ok
from relkit.output.console import MockConsole
from relkit.shell.runner import CommandRunner


def make_runner(
    cwd: Path,
    console: MockConsole,
    *,
    dry_run: bool = False,
    verbose: bool = False,
) -> CommandRunner:
    context = ReleaseContext(ReleaseConfig(name="demo")).with_runtime(version="2.0.0")
    return CommandRunner(cwd=cwd, console=console, dry_run=dry_run, verbose=verbose, context=context)


class TestRun:
    """Command execution."""

    def test_renders_template(self, tmp_path: Path, console: MockConsole) -> None:
        result = make_runner(tmp_path, console).run("echo ${name} ${version}")
        assert result == Ok("demo 2.0.0")

    def test_argv_not_rendered(self, tmp_path: Path, console: MockConsole) -> None:
        result = make_runner(tmp_path, console).run(["echo", "${version}"])
        assert result == Ok("${version}")

    def test_empty_command(self, tmp_path: Path, console: MockConsole) -> None:
        assert make_runner(tmp_path, console).run("  ") == Ok(None)

    def test_failure(self, tmp_path: Path, console: MockConsole) -> None:
        result = make_runner(tmp_path, console).run("exit 3")
        assert isinstance(result, Err)
        assert result.error.returncode == 3

    def test_dry_run_skips_writes(self, tmp_path: Path, console: MockConsole) -> None:
        runner = make_runner(tmp_path, console, dry_run=True)

        assert runner.run("touch created.txt", write=True) == Ok(None)
        assert runner.run("echo read") == Ok("read")

        assert not (tmp_path / "created.txt").exists()
        assert console.find("$ touch created.txt (not executed in dry run)")
        assert console.find("$ echo read")

    def test_verbose_echoes_output(self, tmp_path: Path, console: MockConsole) -> None:
        make_runner(tmp_path, console, verbose=True).run("echo hi")
        assert console.messages == ["$ echo hi", "hi"]

    def test_quiet_by_default(self, tmp_path: Path, console: MockConsole) -> None:
        make_runner(tmp_path, console).run("echo hi")
        assert console.messages == []


class TestBuiltins:
    """In-process builtins."""

    def test_pwd(self, tmp_path: Path, console: MockConsole) -> None:
        assert make_runner(tmp_path, console).run("!pwd") == Ok(str(tmp_path.resolve()))

    def test_pushd_popd(self, tmp_path: Path, console: MockConsole) -> None:
        (tmp_path / "sub").mkdir()
        runner = make_runner(tmp_path, console)

        runner.run("!pushd sub")
        assert runner.cwd == (tmp_path / "sub").resolve()
        assert runner.run("pwd") == Ok(str((tmp_path / "sub").resolve()))

        runner.run("!popd")
        assert runner.cwd == tmp_path.resolve()

    def test_popd_on_base_fails(self, tmp_path: Path, console: MockConsole) -> None:
        result = make_runner(tmp_path, console).run("!popd")
        assert isinstance(result, Err)
        assert "stack empty" in result.error.stderr

    def test_mkdir_cp_rm(self, tmp_path: Path, console: MockConsole) -> None:
        (tmp_path / "a.txt").write_text("a")
        runner = make_runner(tmp_path, console)

        assert isinstance(runner.run("!mkdir out/${version}"), Ok)
        assert isinstance(runner.run("!cp a.txt out/2.0.0"), Ok)
        assert (tmp_path / "out" / "2.0.0" / "a.txt").read_text() == "a"

        assert isinstance(runner.run("!rm -rf out"), Ok)
        assert not (tmp_path / "out").exists()

    def test_dry_run_rm(self, tmp_path: Path, console: MockConsole) -> None:
        (tmp_path / "keep").mkdir()
        make_runner(tmp_path, console, dry_run=True).run("!rm -rf keep")
        assert (tmp_path / "keep").is_dir()

    def test_unknown_builtin(self, tmp_path: Path, console: MockConsole) -> None:
        result = make_runner(tmp_path, console).run("!format c:")
        assert isinstance(result, Err)
        assert "unknown builtin" in result.error.stderr


class TestDirectoryStack:
    """Directory stack without os.chdir."""

    def test_scoped(self, tmp_path: Path, console: MockConsole) -> None:
        (tmp_path / "stage").mkdir()
        runner = make_runner(tmp_path, console)

        with runner.scoped(Path("stage")) as target:
            assert runner.cwd == target
        assert runner.cwd == tmp_path.resolve()

    def test_scoped_restores_on_error(self, tmp_path: Path, console: MockConsole) -> None:
        (tmp_path / "stage").mkdir()
        runner = make_runner(tmp_path, console)

        with pytest.raises(RuntimeError):
            with runner.scoped(Path("stage")):
                raise RuntimeError("boom")
        assert runner.cwd == tmp_path.resolve()

    def test_pushd_missing(self, tmp_path: Path, console: MockConsole) -> None:
        with pytest.raises(NotADirectoryError):
            make_runner(tmp_path, console).pushd(Path("missing"))


class TestCopy:
    """Glob copy."""

    def test_keeps_relative_paths(self, tmp_path: Path, console: MockConsole) -> None:
        base = tmp_path / "dist"
        (base / "lib").mkdir(parents=True)
        (base / "index.js").write_text("i")
        (base / "lib" / "util.js").write_text("u")

        result = make_runner(tmp_path, console).copy(["**/*"], Path("stage"), cwd=Path("dist"))

        assert isinstance(result, Ok)
        assert (tmp_path / "stage" / "index.js").read_text() == "i"
        assert (tmp_path / "stage" / "lib" / "util.js").read_text() == "u"
        assert len(result.value) == 2

    def test_dry_run(self, tmp_path: Path, console: MockConsole) -> None:
        (tmp_path / "a.txt").write_text("a")
        result = make_runner(tmp_path, console, dry_run=True).copy(["*.txt"], Path("stage"))
        assert result == Ok([])
        assert not (tmp_path / "stage").exists()


class TestBump:
    """Manifest bumping through the runner."""

    def test_bumps_manifests(self, tmp_path: Path, console: MockConsole) -> None:
        (tmp_path / "package.json").write_text('{"name": "demo", "version": "1.0.0"}\n')

        bumped = make_runner(tmp_path, console).bump(["package.json"], "1.1.0")

        assert bumped == [tmp_path.resolve() / "package.json"]
        assert json.loads((tmp_path / "package.json").read_text())["version"] == "1.1.0"

    def test_missing_manifest_warns(self, tmp_path: Path, console: MockConsole) -> None:
        bumped = make_runner(tmp_path, console).bump("package.json", "1.1.0")
        assert bumped == []
        assert console.find("Could not bump package.json")

    def test_no_files(self, tmp_path: Path, console: MockConsole) -> None:
        assert make_runner(tmp_path, console).bump(None, "1.1.0") == []
        assert console.messages == []

    def test_dry_run(self, tmp_path: Path, console: MockConsole) -> None:
        (tmp_path / "package.json").write_text('{"version": "1.0.0"}')
        assert make_runner(tmp_path, console, dry_run=True).bump(["package.json"], "1.1.0") == []
        assert json.loads((tmp_path / "package.json").read_text())["version"] == "1.0.0"
