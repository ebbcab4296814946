"""Step planning and execution."""

from .dry import plan_step, plan_steps, render_plan
from .engine import run_script, run_step, run_steps
from .interactive import Decision, ask_confirmation
from .logger import ProgressLogger
from .models import (
    Outcome,
    PackageInfo,
    PackageManagerInfo,
    RunPlan,
    RunReport,
    RunState,
    StateSaver,
    StepOutcome,
)
from .packages import (
    install_packages,
    is_package_installed,
    resolve_package_manager,
    resolve_packages,
    resolve_shells,
    resolve_step,
)
from .script_checker import ScriptChecker, check_scripts

__all__ = [
    "plan_step",
    "plan_steps",
    "render_plan",
    "run_script",
    "run_step",
    "run_steps",
    "Decision",
    "ask_confirmation",
    "ProgressLogger",
    "Outcome",
    "PackageInfo",
    "PackageManagerInfo",
    "RunPlan",
    "RunReport",
    "RunState",
    "StateSaver",
    "StepOutcome",
    "install_packages",
    "is_package_installed",
    "resolve_package_manager",
    "resolve_packages",
    "resolve_shells",
    "resolve_step",
    "ScriptChecker",
    "check_scripts",
]
