"""Process-level defaults, env-driven.

Reads from a .env file and FLUENTFORGE_* environment variables.  Only the
CLI consults these; core functions take everything they need as explicit
arguments so a build never depends on the ambient environment.
"""

from __future__ import annotations

from pathlib import Path

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from fluentforge.models.archive import ArchiveFormat
from fluentforge.models.config import DEFAULT_TARGET


class ForgeSettings(BaseSettings):
    """Tool configuration with environment variable overrides.

    Examples
    --------
    Override via environment::

        export FLUENTFORGE_LOG_LEVEL=DEBUG
        export FLUENTFORGE_TRANSFORMER_COMMAND="wasm2rwasm --stdin"
        export FLUENTFORGE_RPC_TIMEOUT_SECONDS=30
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_prefix="FLUENTFORGE_",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    log_level: str = "INFO"

    # Build defaults
    output_dir: Path = Path("out")
    target: str = DEFAULT_TARGET
    sdk_package: str = "fluentbase-sdk"

    # External tools
    cargo_binary: str = "cargo"
    git_binary: str = "git"
    transformer_command: str = "fluentbase-rwasm"
    parser_command: str = "fluentbase-abi"

    # Remote verification
    rpc_timeout_seconds: float = Field(default=10.0, gt=0)

    # Source archives
    archive_format: ArchiveFormat = ArchiveFormat.TAR_GZ
    compression_level: int = Field(default=6, ge=0, le=9)

    license_scan_lines: int = Field(default=10, ge=1)


# Module-level singleton: `from fluentforge.config import settings`
settings = ForgeSettings()
