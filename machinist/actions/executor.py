"""Restore Executor - runs a restore script with bash.

A bundle's pre-generated install.command is used when it exists and the
plan restores every section. Otherwise the script is generated, written to
a temporary file, and removed again on every exit path.
"""

import logging
import os
import subprocess
import tempfile
from dataclasses import dataclass
from pathlib import Path

from machinist.core.logging_config import log_restore_stage

from .bundle import DEFAULT_SCRIPT_NAME
from .planner import RestorePlan
from .script import generate_restore_script

logger = logging.getLogger("machinist.actions.executor")


@dataclass
class RestoreResult:
    """Outcome of running a restore script.

    Attributes:
        success: Whether every stage succeeded
        return_code: Exit status of the script
        script_path: Script that was run (temporary ones are already gone)
        pregenerated: Whether the bundle's own script was run
    """

    success: bool
    return_code: int
    script_path: Path | None = None
    pregenerated: bool = False


class RestoreExecutor:
    """Runs restore plans.

    Example:
        executor = RestoreExecutor()
        result = executor.execute(plan, workdir=Path("bundle"))
        if not result.success:
            print(f"restore finished with failures (exit {result.return_code})")
    """

    def __init__(
        self,
        shell: str = "bash",
        logfile: Path | None = None,
        script_name: str | None = DEFAULT_SCRIPT_NAME,
    ) -> None:
        """Initialize the executor.

        Args:
            shell: Interpreter used to run the script.
            logfile: Log file for the script's own output (script default if None).
            script_name: Pre-generated script to look for in the bundle
                directory, or None to always generate one.
        """
        self.shell = shell
        self.logfile = logfile
        self.script_name = script_name

    def bundled_script(self, plan: RestorePlan, workdir: Path) -> Path | None:
        """The bundle's restore script, if it can stand in for this plan."""
        if not self.script_name or not plan.is_complete:
            return None
        path = workdir / self.script_name
        return path if path.is_file() else None

    def execute(self, plan: RestorePlan, workdir: Path | None = None) -> RestoreResult:
        """Run the restore script for a plan.

        Args:
            plan: Restore plan to execute.
            workdir: Bundle directory holding the captured files.

        Returns:
            RestoreResult with the script's exit status.

        Raises:
            OSError: If the temporary script cannot be written or the
                shell cannot be started.
        """
        workdir = Path(workdir or Path.cwd())

        env = dict(os.environ)
        env["MACHINIST_BUNDLE_DIR"] = str(workdir.resolve())
        if self.logfile is not None:
            env["MACHINIST_LOGFILE"] = str(self.logfile)

        bundled = self.bundled_script(plan, workdir)
        if bundled is not None:
            logger.info(f"Running bundled restore script {bundled}")
            completed = self._run(bundled, workdir, env)
            return self._result(plan, completed, bundled, pregenerated=True)

        fd, name = tempfile.mkstemp(prefix="machinist-restore-", suffix=".sh")
        script_path = Path(name)
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                f.write(generate_restore_script(plan))
            script_path.chmod(0o700)

            logger.info(f"Running restore script with {plan.stage_count} stages from {workdir}")
            completed = self._run(script_path, workdir, env)
        finally:
            script_path.unlink(missing_ok=True)

        return self._result(plan, completed, script_path, pregenerated=False)

    def _run(self, script_path: Path, workdir: Path, env: dict[str, str]) -> subprocess.CompletedProcess:
        return subprocess.run(
            [self.shell, str(script_path)],
            cwd=workdir,
            env=env,
            check=False,
        )

    def _result(
        self,
        plan: RestorePlan,
        completed: subprocess.CompletedProcess,
        script_path: Path,
        pregenerated: bool,
    ) -> RestoreResult:
        success = completed.returncode == 0
        details = f"{plan.stage_count} stages, exit {completed.returncode}"
        log_restore_stage("restore", success, details)
        if not success:
            logger.error(f"Restore script failed: {details}")

        return RestoreResult(
            success=success,
            return_code=completed.returncode,
            script_path=script_path,
            pregenerated=pregenerated,
        )


def create_restore_executor(shell: str = "bash", script_name: str | None = DEFAULT_SCRIPT_NAME) -> RestoreExecutor:
    """Create a restore executor for the given shell."""
    return RestoreExecutor(shell=shell, script_name=script_name)
