"""Run a command as a pipeline step.

Settings:
    command: string (split with shlex) or list of arguments
    cwd: directory relative to the working directory (default ".")
    env: extra environment variables
    timeout_seconds: command timeout (default 1800)
    Command output is captured and logged line by line.
    junit_file / coverage_file: JUnit and Cobertura reports to publish as
        ``context.test_results``
    package_file / symbols_file / archive_inputs: glob patterns, relative to
        the artifacts directory, whose matches are published to the context
"""

import logging
import os
import shlex
import subprocess
import xml.etree.ElementTree as ET
from pathlib import Path

from shipwright.release.context import SuiteMetrics

logger = logging.getLogger("shipwright.plugins.shell")

DEFAULT_TIMEOUT_SECONDS = 1800


def _command_args(command) -> list[str]:
    if isinstance(command, str):
        return shlex.split(command)
    if isinstance(command, (list, tuple)) and command:
        return [str(part) for part in command]
    raise ValueError("shell plugin requires a 'command' string or list")


def _read_junit(path: Path) -> dict:
    root = ET.parse(path).getroot()
    suites = [root] if root.tag == "testsuite" else root.findall("testsuite")
    tests = failures = skipped = 0
    for suite in suites:
        tests += int(suite.get("tests", 0))
        failures += int(suite.get("failures", 0)) + int(suite.get("errors", 0))
        skipped += int(suite.get("skipped", 0))
    return {
        "passed": max(tests - failures - skipped, 0),
        "failed": failures,
        "skipped": skipped,
    }


def _read_cobertura(path: Path) -> dict:
    root = ET.parse(path).getroot()
    metrics = {"report_file": path}
    if root.get("line-rate") is not None:
        metrics["line_coverage"] = round(float(root.get("line-rate")) * 100, 2)
    if root.get("branch-rate") is not None:
        metrics["branch_coverage"] = round(float(root.get("branch-rate")) * 100, 2)
    return metrics


def _first_match(directory: Path, pattern: str) -> Path | None:
    matches = sorted(directory.glob(pattern))
    return matches[0] if matches else None


def run(settings: dict) -> None:
    context = settings["context"]
    args = _command_args(settings.get("command"))
    cwd = context.working_dir / settings.get("cwd", ".")

    env = dict(os.environ)
    env.update({str(k): str(v) for k, v in (settings.get("env") or {}).items()})
    env.update(
        {
            "SHIPWRIGHT_VERSION": context.version,
            "SHIPWRIGHT_TAG": context.tag,
            "SHIPWRIGHT_BRANCH": context.branch,
            "SHIPWRIGHT_ARTIFACTS_DIR": str(context.artifacts_dir),
            "SHIPWRIGHT_SCRATCH_DIR": str(settings.get("scratch_dir", "")),
        }
    )

    logger.info("$ %s", shlex.join(args))
    # stdout is reserved for the CLI result; command output goes to the log.
    result = subprocess.run(
        args,
        cwd=str(cwd),
        env=env,
        stdout=subprocess.PIPE,
        stderr=subprocess.STDOUT,
        text=True,
        timeout=settings.get("timeout_seconds", DEFAULT_TIMEOUT_SECONDS),
    )
    for line in (result.stdout or "").splitlines():
        logger.info("%s", line)
    if result.returncode != 0:
        raise RuntimeError(f"Command exited with {result.returncode}: {shlex.join(args)}")

    metrics = {}
    if settings.get("junit_file"):
        metrics.update(_read_junit(context.working_dir / settings["junit_file"]))
    if settings.get("coverage_file"):
        metrics.update(_read_cobertura(context.working_dir / settings["coverage_file"]))
    if metrics:
        context.test_results = SuiteMetrics(**metrics)
        logger.info("Test results: %s", context.test_results.model_dump(exclude_none=True))

    for field in ("package_file", "symbols_file"):
        pattern = settings.get(field)
        if not pattern:
            continue
        match = _first_match(context.artifacts_dir, pattern)
        if match is None:
            raise FileNotFoundError(f"No {field} matching {pattern} in {context.artifacts_dir}")
        setattr(context, field, match)

    if settings.get("archive_inputs"):
        patterns = settings["archive_inputs"]
        if isinstance(patterns, str):
            patterns = [patterns]
        inputs = list(context.archive_inputs or [])
        for pattern in patterns:
            inputs.extend(p for p in sorted(context.artifacts_dir.glob(pattern)) if p not in inputs)
        context.archive_inputs = inputs
