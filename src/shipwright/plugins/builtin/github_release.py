"""Create a GitHub release for the release tag and upload its assets.

Settings:
    repository: "owner/name"
    token_env: environment variable holding the token (default GITHUB_TOKEN)
    title: release title template (default "{tag}")
    notes: release body
    draft / prerelease: release flags
"""

import logging
import os

from github import Auth, Github, GithubException, UnknownObjectException

logger = logging.getLogger("shipwright.plugins.github_release")


def _assets(context) -> list:
    assets = list(context.release_assets or [])
    if context.release_archive is not None and context.release_archive not in assets:
        assets.append(context.release_archive)
    return assets


def run(settings: dict) -> None:
    context = settings["context"]
    repository = settings.get("repository")
    if not repository:
        raise ValueError("github_release requires 'repository' (owner/name)")

    token_env = settings.get("token_env", "GITHUB_TOKEN")
    token = os.environ.get(token_env)
    if not token:
        raise ValueError(f"Environment variable {token_env} is not set")

    client = Github(auth=Auth.Token(token))
    repo = client.get_repo(repository)
    title = settings.get("title", "{tag}").format(tag=context.tag, version=context.version)

    try:
        release = repo.get_release(context.tag)
        logger.info("Release %s already exists; adding assets", context.tag)
    except UnknownObjectException:
        release = repo.create_git_release(
            tag=context.tag,
            name=title,
            message=settings.get("notes", ""),
            draft=bool(settings.get("draft", False)),
            prerelease=bool(settings.get("prerelease", False)),
        )
        logger.info("Created release %s in %s", context.tag, repository)

    existing = {asset.name for asset in release.get_assets()}
    for path in _assets(context):
        if path.name in existing:
            logger.info("Asset %s already uploaded", path.name)
            continue
        try:
            release.upload_asset(str(path), name=path.name)
        except GithubException as e:
            raise RuntimeError(f"Uploading {path.name} failed: {e}") from e
        logger.info("Uploaded %s", path.name)

    context.publish_completed = True
