"""Release context, source control and build-project metadata."""

from .context import EXTENSION_FIELDS, ReleaseContext, SuiteMetrics
from .git import GitRepository
from .project import read_project_version
from .builder import ReleaseContextBuilder, select_release_tag, synthesize_tag

__all__ = [
    "EXTENSION_FIELDS",
    "ReleaseContext",
    "SuiteMetrics",
    "GitRepository",
    "read_project_version",
    "ReleaseContextBuilder",
    "select_release_tag",
    "synthesize_tag",
]
