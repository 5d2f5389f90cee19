"""Workspace configuration loaded from RUNVAULT_* environment variables."""

from __future__ import annotations

from functools import lru_cache

from pydantic import SecretStr
from pydantic_settings import BaseSettings, SettingsConfigDict


class RunVaultSettings(BaseSettings):
    """RunVault settings.

    All fields are read from environment variables with the ``RUNVAULT_``
    prefix.  For example, ``RUNVAULT_LOG_LEVEL=DEBUG`` maps to ``log_level``.

    Generative-model provider keys (GOOGLE_API_KEY, OPENAI_API_KEY, ...) are
    **not** managed here -- pydantic-ai reads them from its own conventions.
    """

    model_config = SettingsConfigDict(
        env_prefix="RUNVAULT_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
    )

    # -- Logging ---------------------------------------------------------------
    log_level: str = "INFO"

    # -- Workspace persistence -------------------------------------------------
    data_root: str = "./data"
    """Root directory of the local key-value store holding workspace state."""

    data_prefix: str | None = None
    """Optional namespace inserted into the store path (``{data_root}/{data_prefix}/kv``)."""

    persist_debounce: float = 0.8
    """Seconds of quiet before a dirty workspace is written back."""

    # -- Execution service -----------------------------------------------------
    backend_url: str = "http://localhost:3001"
    """Origin of the optional execution service probed by the router."""

    workspace_dir: str = "./workspace"
    """Shared folder the execution service writes and lists files in."""

    host: str = "0.0.0.0"  # noqa: S104
    port: int = 3001

    run_timeout: float | None = None
    """Upper bound for one toolchain step.  ``None`` waits for completion."""

    python_bin: str = "python3"
    node_bin: str = "node"
    gcc_bin: str = "gcc"
    gxx_bin: str = "g++"
    rustc_bin: str = "rustc"
    javac_bin: str = "javac"
    java_bin: str = "java"
    go_bin: str = "go"
    php_bin: str = "php"
    ruby_bin: str = "ruby"

    # -- Repository sync -------------------------------------------------------
    github_api_url: str = "https://api.github.com"
    github_token: SecretStr | None = None

    # -- Generative models -----------------------------------------------------
    simulation_model: str = "google-gla:gemini-2.5-pro"
    assistant_model: str = "google-gla:gemini-2.5-flash"

    # -- Helpers ---------------------------------------------------------------

    def resolve_github_token(self) -> str | None:
        """Return the configured token as plain text, or ``None``."""
        if self.github_token is None:
            return None
        return self.github_token.get_secret_value() or None


@lru_cache(maxsize=1)
def get_settings() -> RunVaultSettings:
    """Return a cached settings instance.

    Reads from environment variables and ``.env`` on first call, then returns
    the same object.  Call ``get_settings.cache_clear()`` in tests to force a
    re-read after overriding env vars.
    """
    return RunVaultSettings()
