"""
Unit tests for ProcessSession.

These run real processes (/bin/true, /bin/false and small shell scripts) and
check outcomes, recorded statuses, output capture, and that nothing is left
running after a timeout or an interrupt.
"""

import os
import threading
import time
from unittest.mock import patch

import pytest

from cmakeng.execution import ProcessSession, ProcessTerminator, read_status
from cmakeng.execution.drain import PipeDrainWorker
from cmakeng.execution.shared_state import TimeoutConstants
from cmakeng.models import (
    Completed,
    ExecutionRequest,
    ExecutionStatus,
    LaunchFailed,
    OutputMode,
    TimedOut,
    WaitInterrupted,
)


@pytest.mark.unit
class TestSessionOutcomes:
    """Test cases for the outcome and status of a session."""

    def test_true_succeeds(self, temp_dir, console):
        request = ExecutionRequest("/bin/true", results_dir=temp_dir, name="true", record_status=True)

        result = ProcessSession(request, console=console).run()

        assert result.outcome == Completed(0)
        assert result.status == ExecutionStatus.success()
        assert result.succeeded
        assert (temp_dir / "true.status").read_text() == "SUCCESS\n"

    def test_false_records_error_1(self, temp_dir, console):
        request = ExecutionRequest("/bin/false", results_dir=temp_dir, record_status=True)

        result = ProcessSession(request, console=console).run()

        assert result.outcome == Completed(1)
        assert read_status(temp_dir, "false") == ExecutionStatus.error(1)

    def test_exit_code_is_recorded_exactly(self, make_script, temp_dir, console):
        script = make_script("exit42.sh", "exit 42")
        request = ExecutionRequest(script, results_dir=temp_dir, record_status=True)

        result = ProcessSession(request, console=console).run()

        assert result.exit_code == 42
        assert (temp_dir / "exit42.sh.status").read_text() == "ERROR 42\n"

    def test_bare_name_is_found_on_path(self, console):
        result = ProcessSession(ExecutionRequest("true"), console=console).run()
        assert result.outcome == Completed(0)

    def test_status_is_in_progress_while_running(self, make_script, temp_dir, console):
        script = make_script("slow.sh", "sleep 1")
        request = ExecutionRequest(script, results_dir=temp_dir, name="slow", record_status=True)
        session = ProcessSession(request, console=console)
        seen = []

        def observe():
            deadline = time.monotonic() + 5
            while time.monotonic() < deadline and not seen:
                status = read_status(temp_dir, "slow")
                if status is not None:
                    seen.append(status)
                time.sleep(0.02)

        observer = threading.Thread(target=observe)
        observer.start()
        result = session.run()
        observer.join()

        assert seen and seen[0] == ExecutionStatus.in_progress()
        assert read_status(temp_dir, "slow") == result.status == ExecutionStatus.success()

    def test_session_runs_only_once(self, console):
        session = ProcessSession(ExecutionRequest("/bin/true"), console=console)
        session.run()
        with pytest.raises(RuntimeError):
            session.run()

    def test_record_status_requires_results_dir(self):
        with pytest.raises(ValueError):
            ProcessSession(ExecutionRequest("/bin/true", record_status=True))


@pytest.mark.unit
class TestSessionTimeout:
    """Test cases for forced termination on timeout."""

    @pytest.mark.slow
    def test_timeout_kills_process(self, make_script, temp_dir, console, test_utils):
        pid_file = temp_dir / "leader.pid"
        script = make_script("sleeper.sh", f"echo $$ > {pid_file}\nexec sleep 5")
        request = ExecutionRequest(
            script, timeout=1, results_dir=temp_dir, name="sleeper", record_status=True
        )

        started = time.monotonic()
        result = ProcessSession(request, console=console).run()
        elapsed = time.monotonic() - started

        assert result.outcome == TimedOut(1)
        assert result.status == ExecutionStatus.timed_out()
        assert read_status(temp_dir, "sleeper") == ExecutionStatus.timed_out()
        assert elapsed < 4.5
        assert not test_utils.pid_is_running(result.pid)

    @pytest.mark.slow
    def test_timeout_kills_descendants(self, make_script, temp_dir, console, test_utils):
        child_file = temp_dir / "child.pid"
        script = make_script("forker.sh", f"sleep 30 &\necho $! > {child_file}\nsleep 30")
        request = ExecutionRequest(script, timeout=1, stdout_mode=OutputMode.BUFFER)

        result = ProcessSession(request, console=console).run()

        assert isinstance(result.outcome, TimedOut)
        assert not test_utils.pid_is_running(result.pid)
        assert not test_utils.pid_is_running(test_utils.read_pid_file(child_file))

    def test_no_timeout_waits_for_exit(self, make_script, console):
        script = make_script("short.sh", "sleep 0.3")
        result = ProcessSession(ExecutionRequest(script, timeout=None), console=console).run()
        assert result.outcome == Completed(0)

    @pytest.mark.slow
    def test_background_descendant_holding_pipe_is_killed(
        self, make_script, temp_dir, console, test_utils, monkeypatch
    ):
        """Test that a normal exit does not wait on a descendant that keeps stdout open."""
        monkeypatch.setattr(TimeoutConstants, "DRAIN_JOIN_TIMEOUT", 0.5)
        child_file = temp_dir / "background.pid"
        script = make_script("detach.sh", f"sleep 30 &\necho $! > {child_file}\necho done\nexit 0")
        request = ExecutionRequest(script, timeout=10, stdout_mode=OutputMode.BUFFER)
        session = ProcessSession(request, console=console)

        started = time.monotonic()
        result = session.run()
        elapsed = time.monotonic() - started

        assert result.outcome == Completed(0)
        assert result.status == ExecutionStatus.success()
        assert result.stdout_lines == ["done"]
        assert not session.state.forced_termination
        assert elapsed < 5.0
        assert not test_utils.pid_is_running(test_utils.read_pid_file(child_file))


@pytest.mark.unit
class TestSessionLaunchFailures:
    """Test cases for executions that never start."""

    def test_missing_executable(self, temp_dir, console):
        request = ExecutionRequest(
            temp_dir / "does-not-exist", results_dir=temp_dir / "results", record_status=True
        )

        result = ProcessSession(request, console=console).run()

        assert isinstance(result.outcome, LaunchFailed)
        assert isinstance(result.outcome.cause, FileNotFoundError)
        assert result.status is None
        assert not (temp_dir / "results" / "does-not-exist.status").exists()

    def test_missing_bare_name(self, console):
        result = ProcessSession(ExecutionRequest("cmake-ng-no-such-tool"), console=console).run()
        assert isinstance(result.outcome, LaunchFailed)

    def test_not_executable(self, temp_dir, console):
        plain = temp_dir / "plain.txt"
        plain.write_text("not a program")
        plain.chmod(0o644)

        result = ProcessSession(ExecutionRequest(plain), console=console).run()

        assert isinstance(result.outcome, LaunchFailed)

    def test_directory_is_not_executable(self, temp_dir, console):
        result = ProcessSession(ExecutionRequest(temp_dir), console=console).run()
        assert isinstance(result.outcome, LaunchFailed)

    def test_uncreatable_results_dir(self, temp_dir, console):
        blocker = temp_dir / "file"
        blocker.write_text("")
        request = ExecutionRequest("/bin/true", results_dir=blocker / "results", record_status=True)

        result = ProcessSession(request, console=console).run()

        assert isinstance(result.outcome, LaunchFailed)

    def test_spawn_error_replaces_in_progress(self, temp_dir, console):
        """Test that a spawn failure after IN_PROGRESS still ends terminal."""
        request = ExecutionRequest("/bin/true", results_dir=temp_dir, name="spawn", record_status=True)

        with patch("cmakeng.execution.session.subprocess.Popen", side_effect=OSError("fork failed")):
            result = ProcessSession(request, console=console).run()

        assert isinstance(result.outcome, LaunchFailed)
        assert result.status == ExecutionStatus.error(-1)
        assert read_status(temp_dir, "spawn") == ExecutionStatus.error(-1)

    def test_spawn_error_closes_file_sinks(self, temp_dir, console):
        request = ExecutionRequest(
            "/bin/true",
            results_dir=temp_dir,
            stdout_mode=OutputMode.FILE,
            stderr_mode=OutputMode.FILE,
        )
        with patch("cmakeng.execution.session.subprocess.Popen", side_effect=OSError("fork failed")), \
                patch("cmakeng.execution.drain.FileSink.close", autospec=True) as close:
            ProcessSession(request, console=console).run()

        assert close.call_count == 2

    def test_worker_start_failure_reaps_process(self, make_script, temp_dir, console, test_utils):
        """Test that a process launched before the waiter started is still torn down."""
        script = make_script("orphan.sh", "exec sleep 30")
        request = ExecutionRequest(
            script, timeout=60, results_dir=temp_dir, name="orphan", record_status=True
        )
        session = ProcessSession(request, console=console)

        started = time.monotonic()
        with patch.object(PipeDrainWorker, "start", side_effect=RuntimeError("thread limit")):
            with pytest.raises(RuntimeError, match="thread limit"):
                session.run()
        elapsed = time.monotonic() - started

        assert elapsed < 2.5
        assert session.state.forced_termination
        assert session.state.process.returncode is not None
        assert not test_utils.pid_is_running(session.state.process.pid)
        assert read_status(temp_dir, "orphan") == ExecutionStatus.error(-1)


@pytest.mark.unit
class TestSessionOutput:
    """Test cases for output capture and surfacing."""

    def test_lines_captured_in_order_to_memory(self, make_script, console):
        script = make_script("count.sh", "i=0\nwhile [ $i -lt 500 ]; do echo line$i; i=$((i+1)); done")
        request = ExecutionRequest(script, stdout_mode=OutputMode.BUFFER, stderr_mode=OutputMode.BUFFER)

        result = ProcessSession(request, console=console).run()

        assert result.stdout_lines == [f"line{i}" for i in range(500)]
        assert result.stderr_lines == []

    def test_buffers_are_handed_to_the_result(self, make_script, console):
        script = make_script("both.sh", "echo out\necho err >&2\nexit 1")
        request = ExecutionRequest(script, stdout_mode=OutputMode.BUFFER, stderr_mode=OutputMode.BUFFER)
        session = ProcessSession(request, console=console)

        result = session.run()

        assert console.getvalue() == "out\nerr\n"
        assert result.stdout_lines == ["out"]
        assert result.stderr_lines == ["err"]
        assert session.state.stdout_buffer.lines == []
        assert session.state.stderr_buffer.lines == []

    def test_lines_captured_in_order_to_file(self, make_script, temp_dir, console):
        script = make_script("count.sh", "i=0\nwhile [ $i -lt 200 ]; do echo line$i; i=$((i+1)); done")
        request = ExecutionRequest(
            script,
            results_dir=temp_dir,
            name="count",
            stdout_mode=OutputMode.FILE,
            stderr_mode=OutputMode.FILE,
        )

        ProcessSession(request, console=console).run()

        lines = (temp_dir / "count.stdout").read_text().splitlines()
        assert lines == [f"line{i}" for i in range(200)]
        assert (temp_dir / "count.stderr").read_text() == ""

    def test_interleaved_bursts_do_not_hang(self, make_script, console):
        """Test that large writes to both pipes finish and both workers join."""
        script = make_script(
            "bursts.sh",
            "i=0\nwhile [ $i -lt 3000 ]; do\n"
            "  echo out-$i-xxxxxxxxxxxxxxxxxxxxxxxxxxxxxxxxxxxxxx\n"
            "  echo err-$i-xxxxxxxxxxxxxxxxxxxxxxxxxxxxxxxxxxxxxx >&2\n"
            "  i=$((i+1))\ndone",
        )
        request = ExecutionRequest(
            script, timeout=60, stdout_mode=OutputMode.BUFFER, stderr_mode=OutputMode.BUFFER
        )
        session = ProcessSession(request, console=console)

        result = session.run()

        assert result.outcome == Completed(0)
        assert len(result.stdout_lines) == 3000
        assert len(result.stderr_lines) == 3000
        assert all(not worker.is_alive() for worker in session.state.workers)

    def test_stdout_hidden_on_success_stderr_always_shown(self, make_script, console):
        script = make_script("warn.sh", "echo progress\necho warning >&2")
        request = ExecutionRequest(script, stdout_mode=OutputMode.BUFFER, stderr_mode=OutputMode.BUFFER)

        ProcessSession(request, console=console).run()

        assert console.getvalue() == "warning\n"

    def test_stdout_shown_on_failure(self, make_script, console):
        script = make_script("fail.sh", "echo progress\necho error >&2\nexit 2")
        request = ExecutionRequest(script, stdout_mode=OutputMode.BUFFER, stderr_mode=OutputMode.BUFFER)

        ProcessSession(request, console=console).run()

        assert console.getvalue() == "progress\nerror\n"

    def test_merged_stderr_printed_live(self, make_script, console):
        script = make_script("mixed.sh", "echo one\necho two >&2\necho three")
        request = ExecutionRequest(script, merge_stderr=True)

        session = ProcessSession(request, console=console)
        session.run()

        assert console.getvalue() == "one\ntwo\nthree\n"
        assert len(session.state.workers) == 1

    def test_environment_and_working_directory(self, make_script, temp_dir, console):
        work = temp_dir / "work"
        work.mkdir()
        script = make_script("env.sh", 'echo "$CMAKE_NG_VALUE"\npwd')
        request = ExecutionRequest(
            script,
            working_dir=work,
            env={"CMAKE_NG_VALUE": "from-request"},
            stdout_mode=OutputMode.BUFFER,
        )

        result = ProcessSession(request, console=console).run()

        assert result.stdout_lines == ["from-request", os.path.realpath(work)]

    def test_arguments_passed_in_order(self, make_script, console):
        script = make_script("args.sh", 'for a in "$@"; do echo "$a"; done')
        request = ExecutionRequest(script, args=["b", "a c", "-v"], stdout_mode=OutputMode.BUFFER)

        result = ProcessSession(request, console=console).run()

        assert result.stdout_lines == ["b", "a c", "-v"]

    def test_stdin_is_not_inherited(self, make_script, console):
        script = make_script("stdin.sh", "cat")
        request = ExecutionRequest(script, timeout=10, stdout_mode=OutputMode.BUFFER)

        result = ProcessSession(request, console=console).run()

        assert result.outcome == Completed(0)
        assert result.stdout_lines == []


@pytest.mark.unit
class TestSessionInterrupt:
    """Test cases for interrupting a running session."""

    def test_interrupt_tears_down(self, make_script, temp_dir, console, test_utils):
        script = make_script("long.sh", "exec sleep 30")
        request = ExecutionRequest(
            script, timeout=60, results_dir=temp_dir, name="long", record_status=True
        )
        session = ProcessSession(request, console=console)
        threading.Timer(0.5, session.interrupt).start()

        result = session.run()

        assert isinstance(result.outcome, WaitInterrupted)
        assert result.status == ExecutionStatus.error(-1)
        assert read_status(temp_dir, "long") == ExecutionStatus.error(-1)
        assert session.state.forced_termination
        assert not test_utils.pid_is_running(result.pid)

    def test_status_write_failure_does_not_mask_outcome(self, temp_dir, console):
        request = ExecutionRequest("/bin/false", results_dir=temp_dir, record_status=True)
        session = ProcessSession(request, console=console)
        original_write = session.recorder.write

        def write(status):
            if status.is_terminal:
                raise OSError("read-only file system")
            original_write(status)

        session.recorder.write = write
        result = session.run()

        assert result.outcome == Completed(1)
        assert result.status == ExecutionStatus.error(1)

    def test_terminator_failure_is_not_fatal(self, make_script, console):
        script = make_script("long.sh", "exec sleep 2")

        class BrokenTerminator(ProcessTerminator):
            def terminate(self, process, name, wait_for_leader=None):
                process.kill()
                raise RuntimeError("terminator exploded")

        request = ExecutionRequest(script, timeout=0.3)
        result = ProcessSession(request, console=console, terminator=BrokenTerminator()).run()

        assert isinstance(result.outcome, TimedOut)
