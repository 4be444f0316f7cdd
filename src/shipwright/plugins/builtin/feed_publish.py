"""Publish the built package to a package feed.

Runs an upload command for ``context.package_file`` (and
``context.symbols_file`` when ``include_symbols`` is set). The command is a
string or list with ``{file}``, ``{version}``, ``{tag}`` and ``{api_key}``
placeholders, run once per file.

Settings:
    command: upload command template (default: twine upload)
    api_key_env: environment variable holding the feed API key
    include_symbols: also upload the symbols file (default False)
"""

import logging
import os
import shlex
import subprocess

logger = logging.getLogger("shipwright.plugins.feed_publish")

DEFAULT_COMMAND = ["twine", "upload", "--non-interactive", "{file}"]


def _render(template, values: dict) -> list[str]:
    parts = shlex.split(template) if isinstance(template, str) else list(template)
    return [str(part).format(**values) for part in parts]


def run(settings: dict) -> None:
    context = settings["context"]
    if context.package_file is None:
        raise ValueError("No package_file in the release context; run a packaging step first")

    files = [context.package_file]
    if settings.get("include_symbols"):
        if context.symbols_file is None:
            raise ValueError("include_symbols is set but no symbols_file was produced")
        files.append(context.symbols_file)

    api_key = ""
    if settings.get("api_key_env"):
        api_key = os.environ.get(settings["api_key_env"], "")
        if not api_key:
            raise ValueError(f"Environment variable {settings['api_key_env']} is not set")

    template = settings.get("command") or DEFAULT_COMMAND
    for path in files:
        if not path.exists():
            raise FileNotFoundError(f"Package not found: {path}")
        args = _render(
            template,
            {"file": str(path), "version": context.version, "tag": context.tag, "api_key": api_key},
        )
        logger.info("Publishing %s", path.name)
        result = subprocess.run(args, cwd=str(context.working_dir), capture_output=True, text=True)
        if result.returncode != 0:
            detail = (result.stderr or result.stdout).strip()
            raise RuntimeError(f"Upload of {path.name} failed ({result.returncode}): {detail}")

    context.publish_completed = True
