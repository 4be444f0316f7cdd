"""Zip release inputs into the release archive.

Archives ``context.archive_inputs`` plus any ``include`` globs (relative to
the working directory) into ``context.archive_name`` inside the release
directory (the artifacts directory until a publish stage sets one).
"""

import logging
import zipfile
from pathlib import Path

logger = logging.getLogger("shipwright.plugins.compress")


def _collect(context, include) -> list[Path]:
    inputs = [Path(p) for p in (context.archive_inputs or [])]
    if isinstance(include, str):
        include = [include]
    for pattern in include or []:
        for path in sorted(context.working_dir.glob(pattern)):
            if path not in inputs:
                inputs.append(path)
    return inputs


def _add(archive: zipfile.ZipFile, path: Path, base: Path, skip: Path) -> int:
    if path.is_dir():
        count = 0
        for child in sorted(path.rglob("*")):
            if child.is_file() and child.resolve() != skip:
                archive.write(child, child.relative_to(base).as_posix())
                count += 1
        return count
    archive.write(path, path.relative_to(base).as_posix())
    return 1


def _base_for(path: Path, context) -> Path:
    for base in (context.artifacts_dir.resolve(), context.working_dir.resolve()):
        if base in path.resolve().parents:
            return base
    return path.resolve().parent


def run(settings: dict) -> None:
    context = settings["context"]
    destination = context.release_dir or context.artifacts_dir
    archive_path = destination / context.archive_name

    # A leftover archive from an earlier run is never its own input.
    inputs = [
        p for p in _collect(context, settings.get("include"))
        if p.resolve() != archive_path.resolve()
    ]
    missing = [str(p) for p in inputs if not p.exists()]
    if missing:
        raise FileNotFoundError(f"Archive inputs not found: {', '.join(missing)}")
    if not inputs:
        raise ValueError("Nothing to compress: no archive_inputs and no include patterns")

    destination.mkdir(parents=True, exist_ok=True)

    files = 0
    with zipfile.ZipFile(archive_path, "w", compression=zipfile.ZIP_DEFLATED) as archive:
        for path in inputs:
            path = path.resolve()
            files += _add(archive, path, _base_for(path, context), archive_path.resolve())

    context.release_archive = archive_path
    context.add_release_asset(archive_path)
    logger.info("Wrote %s (%d file(s))", archive_path, files)
