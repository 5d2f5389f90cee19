"""Workspace import and export: ZIP bundles and GitHub repositories."""

from runvault.ide_runtime.sync.archive import bundle_name, import_uploads, pack, unpack
from runvault.ide_runtime.sync.github import GitHubSync, PushResult, slugify

__all__ = [
    "GitHubSync",
    "PushResult",
    "bundle_name",
    "import_uploads",
    "pack",
    "slugify",
    "unpack",
]
