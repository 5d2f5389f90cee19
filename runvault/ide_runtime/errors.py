"""Error taxonomy for the IDE runtime.

Every failure a component can surface derives from ``RunVaultError`` so that
callers at a forward-progress boundary (the router, the workspace session)
can catch the family and turn it into a terminal line.
"""

from __future__ import annotations


class RunVaultError(Exception):
    """Base class for all runtime errors."""


# -- Execution ---------------------------------------------------------------


class BackendUnreachable(RunVaultError, ConnectionError):
    """The execution service did not answer (refused or non-OK)."""


class BackendTransportError(RunVaultError):
    """A request to a reachable execution service failed in flight."""


class ToolchainUnsupported(RunVaultError):
    """The execution service has no command for the requested language."""


class RuntimeFault(RunVaultError):
    """Executed code raised; reported, never fatal to the host."""


class InitializationFailure(RunVaultError):
    """The heavyweight interpreter runtime failed to load."""


class RouterBusyError(RunVaultError):
    """An execution was requested while another one is still running."""


# -- Repository sync ---------------------------------------------------------


class SyncError(RunVaultError):
    """Base class for repository sync failures."""


class AuthRequired(SyncError):
    """No usable access token for an operation that needs one."""


class CreateRejected(SyncError):
    """The remote refused to create the target repository."""


class SyncTransportError(SyncError):
    """Network failure or unexpected status talking to the remote."""


class RepositoryNotFound(SyncError, LookupError):
    """The repository (or a path inside it) does not exist or is private."""


class RateLimited(SyncError):
    """The remote throttled the request."""


# -- Archive -----------------------------------------------------------------


class ArchiveError(RunVaultError, ValueError):
    """An uploaded blob is not a readable ZIP container."""
