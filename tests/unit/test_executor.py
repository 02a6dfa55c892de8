"""Tests for the bash runner, the command executor and the tool report."""

from __future__ import annotations

from pathlib import Path

import pytest

from shellagent.core.executor import (
    EMPTY_STREAM,
    NO_COMMANDS_REPORT,
    SKIPPED_MARKER,
    CommandExecutor,
    build_tool_report,
)
from shellagent.core.session import Session
from shellagent.permissions.approval import AlwaysApprove, AlwaysDecline
from shellagent.tools.bash import EXIT_NOT_STARTED, EXIT_TIMED_OUT, BashRunner
from shellagent.types.messages import CommandFinished, CommandStart
from shellagent.types.session import CommandResult
from tests.conftest import ScriptedConfirmer


@pytest.fixture(autouse=True)
def quiet_home(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    """Keep the user's login profile out of ``bash -lc`` output."""
    monkeypatch.setenv("HOME", str(tmp_path))


def _session(tmp_path: Path) -> Session:
    return Session("goal", tmp_path / "session")


class TestBashRunner:
    @pytest.mark.asyncio
    async def test_echo(self, tmp_path: Path):
        out = await BashRunner(cwd=str(tmp_path)).run("echo hello")
        assert out.exit_code == 0
        assert out.stdout == b"hello\n"
        assert not out.timed_out

    @pytest.mark.asyncio
    async def test_exit_code_and_stderr(self, tmp_path: Path):
        out = await BashRunner(cwd=str(tmp_path)).run("echo oops >&2; exit 42")
        assert out.exit_code == 42
        assert out.stderr == b"oops\n"

    @pytest.mark.asyncio
    async def test_cwd(self, tmp_path: Path):
        out = await BashRunner(cwd=str(tmp_path)).run("pwd")
        assert Path(out.stdout.decode().strip()).resolve() == tmp_path.resolve()

    @pytest.mark.asyncio
    async def test_stdin_is_closed(self, tmp_path: Path):
        out = await BashRunner(cwd=str(tmp_path)).run("cat")
        assert out.exit_code == 0
        assert out.stdout == b""

    @pytest.mark.asyncio
    async def test_timeout(self, tmp_path: Path):
        out = await BashRunner(cwd=str(tmp_path), timeout=0.2).run("sleep 5")
        assert out.exit_code == EXIT_TIMED_OUT
        assert out.timed_out
        assert b"timed out" in out.stderr

    @pytest.mark.asyncio
    async def test_missing_shell(self, tmp_path: Path):
        runner = BashRunner(shell=str(tmp_path / "no-such-shell"), cwd=str(tmp_path))
        out = await runner.run("echo hi")
        assert out.exit_code == EXIT_NOT_STARTED
        assert out.stderr


class TestCommandExecutor:
    @pytest.mark.asyncio
    async def test_runs_in_order_and_reports(self, tmp_path: Path):
        session = _session(tmp_path)
        executor = CommandExecutor(BashRunner(cwd=str(tmp_path)))
        report = await executor.run_batch(session, ["echo one", "echo two >&2; exit 3"])

        assert [r.index for r in report.results] == [1, 2]
        assert report.text == (
            "# CMD 1: echo one\n"
            "# EXIT: 0\n"
            "--- STDOUT ---\n"
            "one\n"
            "--- STDERR ---\n"
            f"{EMPTY_STREAM}\n"
            "# CMD 2: echo two >&2; exit 3\n"
            "# EXIT: 3\n"
            "--- STDOUT ---\n"
            f"{EMPTY_STREAM}\n"
            "--- STDERR ---\n"
            "two\n"
        )
        assert session.run_index == 3
        assert session.commands_run == 2

    @pytest.mark.asyncio
    async def test_writes_artifacts(self, tmp_path: Path):
        session = _session(tmp_path)
        executor = CommandExecutor(BashRunner(cwd=str(tmp_path)))
        await executor.run_batch(session, ["printf 'a\\nb\\n'; echo err >&2"])
        assert (session.log_dir / "cmd_1.out").read_bytes() == b"a\nb\n"
        assert (session.log_dir / "cmd_1.err").read_bytes() == b"err\n"

    @pytest.mark.asyncio
    async def test_commands_do_not_share_state(self, tmp_path: Path):
        (tmp_path / "sub").mkdir()
        session = _session(tmp_path)
        executor = CommandExecutor(BashRunner(cwd=str(tmp_path)))
        report = await executor.run_batch(session, ["cd sub && export X=1", "pwd; echo X=$X"])
        stdout = report.results[1].stdout.decode()
        assert Path(stdout.splitlines()[0]).resolve() == tmp_path.resolve()
        assert "X=\n" in stdout

    @pytest.mark.asyncio
    async def test_declined_command_is_skipped(self, tmp_path: Path):
        session = _session(tmp_path)
        confirmer = ScriptedConfirmer([False, True])
        executor = CommandExecutor(BashRunner(cwd=str(tmp_path)), confirmer=confirmer)
        report = await executor.run_batch(session, ["touch nope", "echo yes"])

        assert confirmer.prompts == [(1, "touch nope"), (2, "echo yes")]
        assert not (tmp_path / "nope").exists()
        assert report.results[0].skipped
        assert report.text.startswith(f"# CMD 1: touch nope\n{SKIPPED_MARKER}\n# CMD 2: echo yes\n")
        assert not (session.log_dir / "cmd_1.out").exists()
        assert session.run_index == 3
        assert session.commands_run == 1

    @pytest.mark.asyncio
    async def test_always_decline(self, tmp_path: Path):
        session = _session(tmp_path)
        executor = CommandExecutor(BashRunner(cwd=str(tmp_path)), confirmer=AlwaysDecline())
        report = await executor.run_batch(session, ["echo a", "echo b"])
        assert all(r.skipped for r in report.results)
        assert report.text.count(SKIPPED_MARKER) == 2

    @pytest.mark.asyncio
    async def test_always_approve(self, tmp_path: Path):
        session = _session(tmp_path)
        executor = CommandExecutor(BashRunner(cwd=str(tmp_path)), confirmer=AlwaysApprove())
        assert executor.gate_enabled
        report = await executor.run_batch(session, ["echo a"])
        assert report.results[0].exit_code == 0

    @pytest.mark.asyncio
    async def test_empty_batch(self, tmp_path: Path):
        session = _session(tmp_path)
        report = await CommandExecutor().run_batch(session, [])
        assert report.text == NO_COMMANDS_REPORT
        assert report.results == ()
        assert session.run_index == 1

    @pytest.mark.asyncio
    async def test_event_stream(self, tmp_path: Path):
        session = _session(tmp_path)
        executor = CommandExecutor(BashRunner(cwd=str(tmp_path)))
        events = [e async for e in executor.execute(session, ["true", "false"])]
        assert [type(e) for e in events] == [
            CommandStart, CommandFinished, CommandStart, CommandFinished,
        ]
        assert events[3].result.exit_code == 1
        assert events[1].stdout_path == session.log_dir / "cmd_1.out"

    @pytest.mark.asyncio
    async def test_stream_batch_collects_results(self, tmp_path: Path):
        session = _session(tmp_path)
        executor = CommandExecutor(BashRunner(cwd=str(tmp_path)))
        results: list[CommandResult] = []
        events = [e async for e in executor.stream_batch(session, ["true", "false"], results)]
        assert [type(e) for e in events] == [
            CommandStart, CommandFinished, CommandStart, CommandFinished,
        ]
        assert [r.exit_code for r in results] == [0, 1]
        assert results == [events[1].result, events[3].result]


class TestBuildToolReport:
    def test_tail_truncation(self):
        result = CommandResult(index=1, command="x", executed=True, exit_code=0,
                               stdout=b"abcdef", stderr=b"")
        report = build_tool_report([result], tail_bytes=3)
        assert "--- STDOUT ---\ndef\n" in report

    def test_line_ending_carriage_returns_removed(self):
        result = CommandResult(index=1, command="x", executed=True, exit_code=0,
                               stdout=b"a\r\nb\r\n", stderr=b"")
        report = build_tool_report([result])
        assert "--- STDOUT ---\na\nb\n--- STDERR ---" in report

    def test_inline_carriage_returns_kept(self):
        result = CommandResult(index=1, command="x", executed=True, exit_code=0,
                               stdout=b"10%\r50%\r100%\r\ndone\r", stderr=b"")
        report = build_tool_report([result])
        assert "--- STDOUT ---\n10%\r50%\r100%\ndone\n--- STDERR ---" in report

    def test_invalid_utf8_replaced(self):
        result = CommandResult(index=1, command="x", executed=True, exit_code=0,
                               stdout=b"\xff\xfeok", stderr=b"")
        assert "ok" in build_tool_report([result])
