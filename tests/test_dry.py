from unittest.mock import patch

from mepris.aliases import PackageAliases
from mepris.config import Script
from mepris.filters import PipelineResult
from mepris.runner import (
    Outcome,
    PackageInfo,
    PackageManagerInfo,
    RunPlan,
    ScriptChecker,
    StepOutcome,
    plan_steps,
    render_plan,
)
from mepris.system import HostContext, PackageManager, Shell

from .conftest import make_step, make_which, requires_bash


def plan(steps, host, aliases=None, filter_result=None):
    return plan_steps(
        steps, host, aliases or PackageAliases(), ScriptChecker(host), filter_result
    )


@requires_bash
class TestPlanSteps:
    def test_failed_guard_is_not_planned(self, host, temp_dir):
        source = str(temp_dir / "steps.yaml")
        steps = [
            make_step("skip-me", when_script=Script("exit 1"), source_file=source),
            make_step("keep-me", when_script=Script("true"), source_file=source),
        ]
        result = plan(steps, host)
        assert [o.step_id for o in result.would_run] == ["keep-me"]
        assert result.ids(Outcome.SKIPPED_BY_GUARD) == ["skip-me"]

    def test_skipped_step_needs_no_package_manager(self, ubuntu_info, temp_dir):
        host = HostContext(
            os_info=ubuntu_info, which=make_which("bash"), shells=frozenset({Shell.BASH})
        )
        step = make_step(
            "pkgs",
            when_script=Script("false"),
            packages=["git"],
            source_file=str(temp_dir / "steps.yaml"),
        )
        result = plan([step], host)
        assert result.ids(Outcome.SKIPPED_BY_GUARD) == ["pkgs"]

    def test_guard_output_is_discarded(self, host, temp_dir, capfd):
        source = str(temp_dir / "steps.yaml")
        step = make_step("a", when_script=Script("echo noisy-guard"), source_file=source)
        plan([step], host)
        assert "noisy-guard" not in capfd.readouterr().out

    def test_script_is_not_executed(self, host, temp_dir):
        marker = temp_dir / "ran"
        step = make_step(
            "a", script=Script(f"touch '{marker}'"), source_file=str(temp_dir / "s.yaml")
        )
        plan([step], host)
        assert not marker.exists()


class TestPackagesAndShells:
    def test_alias_and_installed_status(self, host):
        aliases = PackageAliases({"fd": {"apt": "fd-find"}})
        step = make_step("tools", packages=["fd", "git"])

        with patch(
            "mepris.runner.dry.is_package_installed",
            side_effect=lambda manager, name: name == "git",
        ):
            result = plan([step], host, aliases)

        outcome = result.would_run[0]
        assert outcome.package_manager == PackageManagerInfo("apt-get", True)
        assert outcome.packages == [
            PackageInfo("fd-find", "fd", use_alias=True, installed=False),
            PackageInfo("git", "git", use_alias=False, installed=True),
        ]

    def test_missing_manager_skips_installed_check(self, ubuntu_info):
        host = HostContext(
            os_info=ubuntu_info,
            which=lambda name: None,
            shells=frozenset({Shell.BASH}),
            package_manager=PackageManager.APT,
        )
        with patch("mepris.runner.dry.is_package_installed") as installed:
            result = plan([make_step("a", packages=["git"])], host)
        installed.assert_not_called()
        assert result.would_run[0].package_manager.installed is False

    def test_missing_shell_is_reported(self, host):
        step = make_step("ps", script=Script("Get-Date", shell=Shell.PWSH))
        result = plan([step], host)
        assert result.would_run[0].missing_shells == ["pwsh"]

    def test_filtered_steps_are_appended(self, host):
        kept = make_step("kept")
        result = plan(
            [kept],
            host,
            filter_result=PipelineResult(
                filtered=[kept],
                excluded_by_tags=[make_step("by-tag")],
                excluded_by_os=[make_step("by-os")],
                skipped=[make_step("done")],
            ),
        )
        assert [(o.step_id, o.outcome) for o in result.outcomes] == [
            ("kept", Outcome.WOULD_RUN),
            ("by-tag", Outcome.EXCLUDED_BY_TAG),
            ("by-os", Outcome.EXCLUDED_BY_OS),
            ("done", Outcome.SKIPPED_BY_RESUME),
        ]


class TestRenderPlan:
    def test_full_report(self):
        result = RunPlan(
            [
                StepOutcome(
                    "tools",
                    Outcome.WOULD_RUN,
                    package_manager=PackageManagerInfo("apt-get", False),
                    packages=[
                        PackageInfo("fd-find", "fd", use_alias=True),
                        PackageInfo("git", "git", use_alias=False, installed=True),
                    ],
                    missing_shells=["pwsh"],
                ),
                StepOutcome("win", Outcome.EXCLUDED_BY_OS),
                StepOutcome("guarded", Outcome.SKIPPED_BY_GUARD),
            ]
        )
        assert render_plan(result) == [
            "🚀 Would run step 'tools'",
            "📦 Would install packages with apt-get (not installed): "
            "fd-find (using alias), git (already installed)",
            "⚠️ Step 'tools' uses shell(s) that are not currently available. "
            "Make sure they are installed in the previous steps: pwsh",
            "🚫 Ignored steps due to OS mismatch: win",
            "🚫 Ignored steps due to failed when script: guarded",
        ]

    def test_nothing_to_run(self):
        result = RunPlan([StepOutcome("a", Outcome.EXCLUDED_BY_TAG)])
        assert render_plan(result) == [
            "❌ No steps would be run",
            "🚫 Ignored steps due to tag mismatch: a",
        ]
