import io
import os
import shutil

import pytest

from mepris.aliases import PackageAliases
from mepris.config import Script
from mepris.errors import ExecutionError, PackageManagerError, StateError
from mepris.runner import (
    Decision,
    ProgressLogger,
    RunState,
    ScriptChecker,
    ask_confirmation,
    run_steps,
)
from mepris.runner.interactive import MAX_SCRIPT_LINES
from mepris.system import HostContext, PackageManager, Repository, Shell

from .conftest import make_step, make_which, requires_bash


class RecordingSaver:
    def __init__(self, fail: bool = False):
        self.states: list[RunState] = []
        self.fail = fail

    def save(self, state: RunState) -> None:
        self.states.append(state)
        if self.fail:
            raise StateError("disk full")


def scripted_prompt(*answers):
    """Prompt that replays ``answers`` and records the questions."""
    remaining = list(answers)
    questions = []

    def prompt(question, decisions):
        questions.append(question)
        return remaining.pop(0)

    prompt.questions = questions
    return prompt


@pytest.fixture
def doc_step(temp_dir):
    """Steps whose scripts append their id to log.txt in the document dir."""
    source = str(temp_dir / "steps.yaml")

    def _make(step_id, **kwargs):
        kwargs.setdefault("script", Script(f"echo {step_id} >> log.txt"))
        return make_step(step_id, source_file=source, **kwargs)

    return _make


def read_log(temp_dir):
    log = temp_dir / "log.txt"
    return log.read_text().split() if log.exists() else []


def run(steps, host, saver=None, **kwargs):
    out = io.StringIO()
    saver = saver or RecordingSaver()
    report = run_steps(
        steps, host, PackageAliases(), saver, ScriptChecker(host), out, **kwargs
    )
    return report, out.getvalue(), saver


@requires_bash
class TestRunSteps:
    def test_runs_in_order_and_clears_state(self, host, doc_step, temp_dir):
        report, output, saver = run([doc_step("a"), doc_step("b")], host)

        assert read_log(temp_dir) == ["a", "b"]
        assert report.completed == ["a", "b"]
        assert [s.last_step_id for s in saver.states] == ["a", "b", None]
        assert "🚀 [1/2] Running step 'a'..." in output
        assert "✅ [2/2] Step 'b' completed" in output
        assert output.rstrip().endswith("✅ Run completed")

    def test_failed_guard_skips_step(self, host, doc_step, temp_dir):
        steps = [doc_step("a", when_script=Script("exit 1")), doc_step("b")]
        report, output, saver = run(steps, host)

        assert read_log(temp_dir) == ["b"]
        assert report.skipped_by_guard == ["a"]
        assert "⏭️ [1/2] Step 'a' skipped due to failed when script" in output
        # State is saved before the guard runs
        assert [s.last_step_id for s in saver.states] == ["a", "b", None]

    def test_hard_failure_stops_run(self, host, doc_step, temp_dir):
        steps = [doc_step("a"), doc_step("b", script=Script("exit 4")), doc_step("c")]
        saver = RecordingSaver()
        with pytest.raises(ExecutionError) as exc_info:
            run(steps, host, saver=saver)

        error = exc_info.value
        assert error.step_id == "b"
        assert error.tool == "bash"
        assert error.source_file == str(temp_dir / "steps.yaml")
        assert "Failed to run script in file" in str(error)
        assert "bash script failed with code 4" in str(error)
        assert read_log(temp_dir) == ["a"]
        assert saver.states[-1].last_step_id == "b"

    def test_pre_script_failure(self, host, doc_step):
        step = doc_step("a", pre_script=Script("exit 1"))
        with pytest.raises(ExecutionError, match="Failed to run pre_script"):
            run([step], host)

    def test_scripts_run_in_document_dir(self, host, doc_step, temp_dir):
        run([doc_step("a", script=Script("pwd > where.txt"))], host)
        assert (temp_dir / "where.txt").read_text().strip() == str(temp_dir)

    def test_state_save_failure_is_a_warning(self, host, doc_step, temp_dir):
        report, output, _ = run([doc_step("a")], host, saver=RecordingSaver(fail=True))
        assert report.completed == ["a"]
        assert "Failed to save run state" in output

    def test_syntax_error_fails_before_any_step(self, host, doc_step, temp_dir):
        steps = [doc_step("a"), doc_step("b", script=Script("if then"))]
        with pytest.raises(Exception, match="Failed to check script"):
            run(steps, host)
        assert read_log(temp_dir) == []

    def test_missing_package_manager(self, host, doc_step):
        no_apt = HostContext(
            os_info=host.os_info,
            which=lambda name: "/bin/bash" if name == "bash" else None,
            shells=host.shells,
            package_manager=PackageManager.APT,
        )
        step = doc_step("a", packages=["git"], script=None)
        with pytest.raises(ExecutionError, match="Package manager apt-get not found") as exc_info:
            run([step], no_apt)
        assert exc_info.value.step_id == "a"

    def test_manager_installed_by_earlier_step(
        self, ubuntu_info, doc_step, temp_dir, monkeypatch
    ):
        if shutil.which("yay") or shutil.which("paru"):
            pytest.skip("an AUR helper is already installed")
        monkeypatch.setenv("PATH", f"{temp_dir / 'bin'}{os.pathsep}{os.environ['PATH']}")
        host = HostContext(
            os_info=ubuntu_info,
            shells=frozenset({Shell.BASH}),
            package_manager=PackageManager.APT,
        )
        install_paru = doc_step(
            "install-paru",
            script=Script(
                "mkdir -p bin && "
                "printf '#!/bin/sh\\necho \"$*\" > paru-args.txt\\n' > bin/paru && "
                "chmod +x bin/paru"
            ),
        )
        aur_tools = doc_step(
            "aur-tools", package_source=Repository.AUR, packages=["foo"], script=None
        )

        report, _, _ = run([install_paru, aur_tools], host)

        assert report.completed == ["install-paru", "aur-tools"]
        assert (temp_dir / "paru-args.txt").read_text().split() == [
            "-S", "--noconfirm", "--needed", "foo"
        ]

    def test_undetectable_manager_names_step(self, ubuntu_info, doc_step, temp_dir):
        host = HostContext(
            os_info=ubuntu_info, which=make_which("bash"), shells=frozenset({Shell.BASH})
        )
        steps = [doc_step("a"), doc_step("needs-pkgs", packages=["git"], script=None)]
        saver = RecordingSaver()

        with pytest.raises(PackageManagerError) as exc_info:
            run(steps, host, saver=saver)

        error = exc_info.value
        assert error.step_id == "needs-pkgs"
        assert error.source_file == str(temp_dir / "steps.yaml")
        assert "step 'needs-pkgs'" in str(error)
        assert "Could not detect package manager" in str(error)
        assert read_log(temp_dir) == ["a"]
        assert saver.states[-1].last_step_id == "needs-pkgs"


@requires_bash
class TestInteractiveRun:
    def test_skip_and_run(self, host, doc_step, temp_dir):
        prompt = scripted_prompt("s", "r")
        report, _, _ = run([doc_step("a"), doc_step("b")], host, interactive=True, prompt=prompt)
        assert read_log(temp_dir) == ["b"]
        assert report.skipped_by_user == ["a"]
        assert "[1/2] What do you want to do?" in prompt.questions[0]

    def test_abort_keeps_state(self, host, doc_step, temp_dir):
        prompt = scripted_prompt("r", "a")
        report, output, saver = run(
            [doc_step("a"), doc_step("b")], host, interactive=True, prompt=prompt
        )
        assert report.aborted
        assert read_log(temp_dir) == ["a"]
        assert saver.states[-1].last_step_id == "b"
        assert saver.states[-1].interactive
        assert "Run completed" not in output

    def test_leave_interactive_mode(self, host, doc_step, temp_dir):
        prompt = scripted_prompt("l")
        run([doc_step("a"), doc_step("b"), doc_step("c")], host, interactive=True, prompt=prompt)
        assert read_log(temp_dir) == ["a", "b", "c"]
        assert len(prompt.questions) == 1

    def test_guard_skip_happens_before_prompt(self, host, doc_step):
        prompt = scripted_prompt("r")
        steps = [doc_step("a", when_script=Script("false")), doc_step("b")]
        run(steps, host, interactive=True, prompt=prompt)
        assert len(prompt.questions) == 1


class TestAskConfirmation:
    def test_invalid_input_asks_again(self):
        out = io.StringIO()
        prompt = scripted_prompt("x", "R")
        decision = ask_confirmation(make_step("a", script=Script("ls")), ProgressLogger(1, out), prompt)
        assert decision == Decision.RUN
        assert "Invalid input, please try again." in out.getvalue()
        assert "v=View full step" not in prompt.questions[0]

    def test_long_script_is_truncated_and_viewable(self):
        out = io.StringIO()
        code = "\n".join(f"echo line{i}" for i in range(MAX_SCRIPT_LINES + 3))
        step = make_step("long", script=Script(code))
        prompt = scripted_prompt("v", "s")

        decision = ask_confirmation(step, ProgressLogger(1, out), prompt)

        assert decision == Decision.SKIP
        assert "v=View full step" in prompt.questions[0]
        text = out.getvalue()
        assert text.count(f"echo line{MAX_SCRIPT_LINES + 2}") == 1
        assert "..." in text

    def test_cancelled_prompt_aborts(self):
        prompt = scripted_prompt(None)
        decision = ask_confirmation(make_step("a"), ProgressLogger(1, io.StringIO()), prompt)
        assert decision == Decision.ABORT


class TestProgressLogger:
    def test_marker_is_padded(self):
        out = io.StringIO()
        logger = ProgressLogger(10, out)
        logger.current_step = 2
        logger.log("PROGRESS hello")
        assert out.getvalue() == "[ 2/10] hello\n"
