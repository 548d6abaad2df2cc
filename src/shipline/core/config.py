"""Application state and configuration."""

from __future__ import annotations

import os
import re
from pathlib import Path
from typing import Any

import platformdirs
from pydantic import BaseModel, Field, SecretStr, field_validator, model_validator
from pydantic_settings import (
    BaseSettings,
    PydanticBaseSettingsSource,
    SettingsConfigDict,
)

from shipline.core.base import BaseConfig, BaseState
from shipline.core.log import Logger
from shipline.core.result import StageResult
from shipline.core.yaml_settings import YamlWithIncludesSettingsSource
from shipline.runner.stage import StageRunner

# ============================================================
# TEMPLATE SUBSTITUTION NAMESPACE
# ============================================================

# Modules available for template substitution in YAML files
# Usage: {platformdirs.user_state_dir}, {os.getcwd}, {Path.home}
TEMPLATE_NAMESPACE = {
    'os': os,
    'platformdirs': platformdirs,
    'Path': Path,
}

TEMPLATE_PATTERN = re.compile(r'\{([a-z_][a-z0-9._]*)\}')

# Stages run on the build machine, in this order, before the image
# is built. An empty command skips the stage.
LOCAL_STAGES = (
    "checkout",
    "setup",
    "install",
    "migrate",
    "test",
    "lint",
    "collectstatic",
)

# ============================================================
# CONFIG MODELS (loaded from YAML/env/CLI, frozen after load)
# ============================================================

class JobConfig(BaseConfig):
    """Identity of the pipeline job being run."""

    name: str = Field(
        default="shipline",
        description="Job name reported in build notifications",
    )
    build_number: str = Field(
        default="0",
        description="Build number reported in build notifications",
    )


class PipelineConfig(BaseConfig):
    """Local stage commands run before the image build."""

    workdir: Path = Field(
        default=Path("."),
        description="Source checkout directory the stages run in",
    )
    commands: dict[str, str] = Field(
        default_factory=dict,
        description=(
            "Shell command per stage: "
            + ", ".join(LOCAL_STAGES)
            + ". Empty or missing commands are skipped."
        ),
    )
    env: dict[str, str] = Field(
        default_factory=dict,
        description="Extra environment variables for every stage",
    )
    timeout: int = Field(
        default=3600,
        description="Timeout per stage in seconds",
    )

    @field_validator("commands")
    @classmethod
    def _known_stages(cls, commands: dict[str, str]) -> dict[str, str]:
        unknown = sorted(set(commands) - set(LOCAL_STAGES))
        if unknown:
            raise ValueError(
                f"Unknown stage(s) {', '.join(unknown)}; "
                f"valid stages: {', '.join(LOCAL_STAGES)}"
            )
        return commands


class ImageConfig(BaseConfig):
    """Container image build and push."""

    reference: str | None = Field(
        default=None,
        description="Image reference to build, push and deploy",
    )
    engine: str = Field(
        default="docker",
        description="Container engine executable",
    )
    context: Path = Field(
        default=Path("."),
        description="Build context, relative to the pipeline workdir",
    )
    dockerfile: str | None = Field(
        default=None,
        description="Dockerfile path (engine default if unset)",
    )
    push: bool = Field(
        default=True,
        description="Push the image after building it",
    )
    timeout: int = Field(
        default=3600,
        description="Timeout for build and push in seconds",
    )


class DeployConfig(BaseConfig):
    """Remote deploy over SSH."""

    enabled: bool = Field(
        default=True,
        description="Deploy after a successful image build",
    )
    host: str | None = Field(
        default=None,
        description="Remote host to deploy to",
    )
    user: str | None = Field(
        default=None,
        description="Remote SSH user",
    )
    port: int | None = Field(
        default=None,
        description="Remote SSH port (ssh default if unset)",
    )
    identity_file: Path | None = Field(
        default=None,
        description="SSH private key file",
    )
    ssh: str = Field(
        default="ssh",
        description="SSH client executable",
    )
    app_dir: str = Field(
        default="/srv/app",
        description="Remote application directory",
    )
    container_name: str = Field(
        default="app",
        description="Name of the running application container",
    )
    ports: list[str] = Field(
        default_factory=lambda: ["8000:8000"],
        description="Port mappings (host:container)",
    )
    volumes: list[str] = Field(
        default_factory=list,
        description="Volume mappings (host:container)",
    )
    env: dict[str, str] = Field(
        default_factory=dict,
        description="Environment variables for the container",
    )
    restart: str | None = Field(
        default="unless-stopped",
        description="Container restart policy",
    )
    timeout: int = Field(
        default=600,
        description="Timeout for the remote deploy in seconds",
    )


class NotifyConfig(BaseConfig):
    """Build-status webhook."""

    url: str | None = Field(
        default=None,
        description="Webhook URL receiving build reports",
    )
    token: SecretStr | None = Field(
        default=None,
        description="Bearer token for the webhook",
    )
    timeout: float = Field(
        default=10.0,
        description="HTTP timeout in seconds",
    )
    tail_lines: int = Field(
        default=50,
        description="Build log lines included in the report",
    )
    log_file: Path | None = Field(
        default=None,
        description=(
            "Build log to excerpt (defaults to this build's build.log)"
        ),
    )


class Config(BaseConfig):
    """Application configuration loaded from YAML/env/CLI."""

    logger: Logger = Field(
        default_factory=Logger,
        description="Logger configuration and runtime instance",
    )
    job: JobConfig = Field(
        default_factory=JobConfig,
        description="Job identity",
    )
    pipeline: PipelineConfig = Field(
        default_factory=PipelineConfig,
        description="Local stage commands",
    )
    image: ImageConfig = Field(
        default_factory=ImageConfig,
        description="Container image build and push",
    )
    deploy: DeployConfig = Field(
        default_factory=DeployConfig,
        description="Remote deploy settings",
    )
    notify: NotifyConfig = Field(
        default_factory=NotifyConfig,
        description="Build-status webhook settings",
    )
    log_root: Path = Field(
        default_factory=(
            lambda: Path(platformdirs.user_state_dir("shipline",
                                                     appauthor=False))
        ),
        description=(
            "Root directory for all log files "
            "(supports {platformdirs.*} templates)"
        ),
    )

    @model_validator(mode='after')
    def _setup_logger(self) -> 'Config':
        """Point the global logger at the configured sinks."""
        from shipline.core.log import setup_logger

        setup_logger(
            log_root=self.log_root,
            job_name=self.job.name,
            console=self.logger.console,
            file=self.logger.file,
            logfire=self.logger.logfire,
            level=self.logger.level,
            instrument_httpx=self.logger.instrument_httpx,
        )
        return self

    def close(self):
        """Close the global logger, then any other closeable children."""
        from shipline.core.log import logger
        logger.close()
        super().close()


# ============================================================
# RUNTIME STATE MODELS (mutable during workflow execution)
# ============================================================

class PipelineState(BaseState):
    """What the pipeline run has done so far."""

    build_dir: Path | None = Field(
        default=None,
        description="Log directory of the current build",
    )
    stage_runner: StageRunner | None = Field(
        default=None,
        description="StageRunner for the current build",
    )
    stage_results: list[StageResult] = Field(
        default_factory=list,
        description="StageResult for every stage that ran",
    )

    @property
    def build_log(self) -> Path | None:
        if self.build_dir is None:
            return None
        return self.build_dir / "build.log"


class Runtime(BaseModel):
    """All runtime state, grouped by workflow."""

    pipeline: PipelineState = Field(
        default_factory=PipelineState,
        description="Pipeline run state",
    )


# ============================================================
# STATE (config + runtime combined)
# ============================================================

class State(BaseSettings):
    """Configuration plus runtime state; flows through every workflow.

    The config tree is validated and frozen once, at startup. Only
    runtime changes while the pipeline runs.
    """

    config: Config = Field(
        default_factory=Config,
        description="Application configuration (from YAML/env/CLI)",
    )
    runtime: Runtime = Field(
        default_factory=Runtime,
        description="Runtime state (mutates during workflow execution)",
    )
    include: list[str] | None = Field(
        default=None,
        description=(
            "Additional YAML files to include and merge. "
            "Use --include on CLI or include: in YAML files."
        ),
    )

    model_config = SettingsConfigDict(
        yaml_file="shipline.yaml",
        env_file=".env",
        env_prefix="SHIPLINE_",
        env_nested_delimiter="__",
        cli_parse_args=True,
        cli_implicit_flags=True,
        cli_use_class_docs_for_groups=True,
        arbitrary_types_allowed=True,
        extra='ignore'
    )

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: type[BaseSettings],
        init_settings: PydanticBaseSettingsSource,
        env_settings: PydanticBaseSettingsSource,
        dotenv_settings: PydanticBaseSettingsSource,
        file_secret_settings: PydanticBaseSettingsSource,
    ) -> tuple[PydanticBaseSettingsSource, ...]:
        """Source priority, highest first: init/CLI, environment,
        .env, YAML files, file secrets.

        The environment outranks YAML so a CI system can inject
        hosts and tokens without editing shipline.yaml.
        """
        return (
            init_settings,
            env_settings,
            dotenv_settings,
            YamlWithIncludesSettingsSource(settings_cls),
            file_secret_settings,
        )

    @model_validator(mode="before")
    @classmethod
    def substitute_templates(cls, data: Any) -> Any:
        """Substitute {config.*} and {platformdirs.*} templates.

        Runs on the raw merged data before validation, since the
        validated config is frozen. Templates that do not resolve,
        such as {log_root} in the file sink path, are left alone.
        """
        if not isinstance(data, dict):
            return data
        return substitute(data, data)


def substitute(value: Any, root: dict) -> Any:
    """Return value with templates resolved against root."""
    if isinstance(value, str):
        return _substitute_string(value, root)
    if isinstance(value, dict):
        return {key: substitute(item, root) for key, item in value.items()}
    if isinstance(value, list):
        return [substitute(item, root) for item in value]
    return value


def _substitute_string(value: str, root: dict, depth: int = 0) -> str:
    """Replace {dotted.path} templates in one string.

    Examples:
        "{config.deploy.app_dir}/media" → "/srv/app/media"
        "{platformdirs.user_state_dir}" → "~/.local/state/shipline"
    """
    def replace_template(match):
        parts = match.group(1).split(".")

        if parts[0] in TEMPLATE_NAMESPACE:
            obj = TEMPLATE_NAMESPACE[parts[0]]
            for part in parts[1:]:
                obj = getattr(obj, part, None)
                if obj is None:
                    return match.group(0)
            if callable(obj):
                try:
                    if parts[0] == 'platformdirs':
                        obj = obj('shipline', appauthor=False)
                    else:
                        obj = obj()
                except TypeError:
                    return match.group(0)
            return str(obj)

        obj = root
        for part in parts:
            if not isinstance(obj, dict) or part not in obj:
                return match.group(0)
            obj = obj[part]
        if obj is None or isinstance(obj, (dict, list)):
            return match.group(0)
        if isinstance(obj, str) and depth < 5:
            return _substitute_string(obj, root, depth + 1)
        return str(obj)

    return TEMPLATE_PATTERN.sub(replace_template, value)


__all__ = [
    "LOCAL_STAGES",
    "Config",
    "DeployConfig",
    "ImageConfig",
    "JobConfig",
    "NotifyConfig",
    "PipelineConfig",
    "State",
]
