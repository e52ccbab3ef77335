"""Unit tests for BuildInvoker."""

from pathlib import Path

import pytest

from qtrace.build import BuildInvoker, ProcessResult
from qtrace.build.build_invoker import EXIT_COMMAND_NOT_FOUND, merge_compile_variables
from qtrace.errors import BuildError, BuildTimeoutError, ConfigurationError


@pytest.fixture
def invoker(fake_runner, source_root):
    return BuildInvoker(source_root, runner=fake_runner, environ={"PATH": "/usr/bin"})


class TestConfigure:
    """Test cases for the configure step."""

    def test_runs_configure_script_in_source_root(self, invoker, fake_runner, source_root):
        result = invoker.configure(("--disable-gtk", "--target-list=x86_64-linux-user"))

        assert result.success
        assert result.step == "configure"
        assert result.produced_artifact_path is None
        call = fake_runner.calls[0]
        assert call["command"] == str(source_root / "configure")
        assert call["args"] == ["--disable-gtk", "--target-list=x86_64-linux-user"]
        assert call["cwd"] == source_root
        assert call["env"] == {"PATH": "/usr/bin"}

    def test_passes_timeout(self, invoker, fake_runner):
        invoker.configure(("--disable-gtk",), timeout=30.0)
        assert fake_runner.calls[0]["timeout"] == 30.0

    def test_non_zero_exit_raises_build_error(self, make_runner, source_root):
        runner = make_runner([ProcessResult(exit_code=1, stderr_tail="ERROR: glib-2.0 not found")])
        invoker = BuildInvoker(source_root, runner=runner)

        with pytest.raises(BuildError) as exc_info:
            invoker.configure(("--disable-gtk",))

        assert exc_info.value.step == "configure"
        assert exc_info.value.exit_code == 1
        assert "glib-2.0 not found" in exc_info.value.stderr_tail
        assert "glib-2.0 not found" in str(exc_info.value)

    def test_timeout_raises_timeout_error(self, make_runner, source_root):
        runner = make_runner([ProcessResult(exit_code=None, timed_out=True)])
        invoker = BuildInvoker(source_root, runner=runner)

        with pytest.raises(BuildTimeoutError) as exc_info:
            invoker.configure(("--disable-gtk",), timeout=5.0)

        assert exc_info.value.step == "configure"
        assert exc_info.value.exit_code is None
        assert "TIMEOUT" in str(exc_info.value)

    def test_missing_script_raises_build_error(self, source_root, make_runner):
        class MissingRunner(make_runner):
            def run(self, command, args, env=None, cwd=None, timeout=None):
                raise FileNotFoundError(2, "No such file or directory", command)

        invoker = BuildInvoker(source_root, runner=MissingRunner())

        with pytest.raises(BuildError) as exc_info:
            invoker.configure(("--disable-gtk",))

        assert exc_info.value.step == "configure"
        assert exc_info.value.exit_code == EXIT_COMMAND_NOT_FOUND


class TestCompile:
    """Test cases for the compile step."""

    def test_runs_make_with_jobs_and_variables(self, invoker, fake_runner, source_root):
        result = invoker.compile(8, {"CFLAGS": "-lprotobuf-c -luuid"})

        assert result.success
        assert result.step == "compile"
        call = fake_runner.calls[0]
        assert call["command"] == "make"
        assert call["args"] == ["-j8", "CFLAGS=-lprotobuf-c -luuid"]
        assert call["cwd"] == source_root

    def test_environment_is_augmented(self, invoker, fake_runner):
        invoker.compile(2, {"CFLAGS": "-luuid"})

        assert fake_runner.calls[0]["env"] == {"PATH": "/usr/bin", "CFLAGS": "-luuid"}

    def test_no_extra_flags(self, invoker, fake_runner):
        result = invoker.compile(1)
        assert fake_runner.calls[0]["args"] == ["-j1"]
        assert result.produced_artifact_path is None

    def test_reports_expected_artifact(self, invoker, source_root):
        artifact = source_root / "x86_64-linux-user" / "qemu-x86_64"

        result = invoker.compile(4, expected_artifact=artifact)

        assert result.step == "compile"
        assert result.produced_artifact_path == artifact

    @pytest.mark.parametrize("job_count", [0, -4])
    def test_invalid_job_count(self, invoker, fake_runner, job_count):
        with pytest.raises(ConfigurationError):
            invoker.compile(job_count)
        assert fake_runner.calls == []

    def test_non_zero_exit_raises_build_error(self, make_runner, source_root):
        runner = make_runner([ProcessResult(exit_code=2, stderr_tail="make: *** [all] Error 2")])
        invoker = BuildInvoker(source_root, runner=runner)

        with pytest.raises(BuildError) as exc_info:
            invoker.compile(4)

        assert exc_info.value.step == "compile"
        assert exc_info.value.exit_code == 2

    def test_custom_make_command(self, fake_runner):
        invoker = BuildInvoker(Path("/src"), runner=fake_runner, environ={}, make_command="gmake")
        invoker.compile(1)
        assert fake_runner.calls[0]["command"] == "gmake"


class TestHelpers:
    """Test cases for module helpers."""

    def test_make_assignments_keep_order(self):
        assert BuildInvoker.make_assignments({"CC": "clang", "CFLAGS": "-O2"}) == [
            "CC=clang",
            "CFLAGS=-O2",
        ]

    def test_merge_compile_variables_later_wins(self):
        merged = merge_compile_variables({"CFLAGS": "-luuid", "CC": "gcc"}, {"CFLAGS": "-g"})
        assert merged == {"CFLAGS": "-g", "CC": "gcc"}
