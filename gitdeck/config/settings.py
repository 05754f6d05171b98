"""Configuration settings models using Pydantic."""

from pathlib import Path
from typing import Optional

from pydantic import AliasChoices, BaseModel, Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class NetworkConfig(BaseModel):
    """Retry and timeout knobs shared by every networked unit of work."""

    retry_count: int = Field(default=3, ge=1, le=20)
    retry_delay_ms: int = Field(default=1500, ge=0)
    timeout_ms: int = Field(default=15000, ge=1)


class GitConfig(BaseModel):
    """Configuration for local git invocations."""

    executable: str = "git"
    command_timeout_ms: int = Field(default=30000, ge=1)

    @field_validator("executable")
    @classmethod
    def validate_executable(cls, v: str) -> str:
        if not v or not v.strip():
            raise ValueError("executable cannot be empty")
        return v.strip()


class WorkspaceConfig(BaseModel):
    """Candidate directories operations may run against."""

    folders: list[str] = Field(default_factory=list)

    @property
    def resolved_folders(self) -> list[Path]:
        """Get the configured folders with ~ expanded, duplicates removed."""
        seen: list[Path] = []
        for folder in self.folders:
            path = Path(folder).expanduser().resolve()
            if path not in seen:
                seen.append(path)
        return seen


class GitHubConfig(BaseModel):
    """Configuration for the GitHub REST API."""

    api_url: str = "https://api.github.com"
    web_url: str = "https://github.com"
    token: Optional[str] = None


class StorageConfig(BaseModel):
    """Configuration for the local credential vault."""

    vault_path: str = "~/.gitdeck/vault.bin"
    vault_key_path: str = "~/.gitdeck/vault.key"

    @property
    def resolved_vault_path(self) -> Path:
        return Path(self.vault_path).expanduser()

    @property
    def resolved_vault_key_path(self) -> Path:
        return Path(self.vault_key_path).expanduser()


class Settings(BaseSettings):
    """Main application settings."""

    model_config = SettingsConfigDict(
        env_prefix="GITDECK_",
        env_nested_delimiter="__",
        extra="ignore",
    )

    # Token may come from the field name, GITHUB_TOKEN or GH_TOKEN
    github_token: Optional[str] = Field(
        default=None,
        validation_alias=AliasChoices("github_token", "GITHUB_TOKEN", "GH_TOKEN"),
    )
    vault_key: Optional[str] = Field(
        default=None,
        validation_alias=AliasChoices("vault_key", "GITDECK_VAULT_KEY"),
    )

    # Nested configurations
    network: NetworkConfig = Field(default_factory=NetworkConfig)
    git: GitConfig = Field(default_factory=GitConfig)
    workspace: WorkspaceConfig = Field(default_factory=WorkspaceConfig)
    github: GitHubConfig = Field(default_factory=GitHubConfig)
    storage: StorageConfig = Field(default_factory=StorageConfig)

    @field_validator("github_token", "vault_key")
    @classmethod
    def validate_secret(cls, v: Optional[str]) -> Optional[str]:
        """Treat empty strings as unset."""
        if v is not None and not v.strip():
            return None
        return v

    def get_github_token(self) -> Optional[str]:
        """Get the GitHub token, preferring the environment over config.yaml."""
        return self.github_token or self.github.token
