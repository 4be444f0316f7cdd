"""Delete stale files from the artifacts directory.

Settings:
    patterns: glob pattern or list of patterns (default: everything)
"""

import logging
import shutil

logger = logging.getLogger("shipwright.plugins.clean")


def run(settings: dict) -> None:
    context = settings["context"]
    artifacts_dir = context.artifacts_dir.resolve()
    patterns = settings.get("patterns") or ["*"]
    if isinstance(patterns, str):
        patterns = [patterns]

    removed = 0
    for pattern in patterns:
        for path in sorted(artifacts_dir.glob(pattern)):
            resolved = path.resolve()
            if resolved == artifacts_dir or artifacts_dir not in resolved.parents:
                continue
            if not path.exists():
                continue
            if path.is_dir() and not path.is_symlink():
                shutil.rmtree(path)
            else:
                path.unlink()
            removed += 1
    logger.info("Removed %d item(s) from %s", removed, artifacts_dir)
