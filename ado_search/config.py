import logging
import os
from pathlib import Path

import yaml
from dotenv import load_dotenv
from pydantic import BaseModel, ConfigDict, Field

from .errors import ConfigError
from .models import Credentials

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_PATH = Path("config.yaml")
DEFAULT_API_VERSION = "7.1"
TRANSPORTS = ("sse", "streamable-http", "stdio")

# environment variable -> (section, key) in the YAML file
ENV_OVERRIDES = {
    "AZURE_DEVOPS_ORGANIZATION": ("azure_devops", "organization"),
    "AZURE_DEVOPS_PROJECT": ("azure_devops", "project"),
    "AZURE_DEVOPS_PAT": ("azure_devops", "pat"),
    "AZURE_DEVOPS_API_VERSION": ("azure_devops", "api_version"),
    "MCP_HOST": ("server", "host"),
    "MCP_PORT": ("server", "port"),
    "MCP_TRANSPORT": ("server", "transport"),
}


class Settings(BaseModel):
    model_config = ConfigDict(frozen=True)

    organization: str
    project: str
    pat: str = Field(repr=False)
    api_version: str = DEFAULT_API_VERSION
    host: str = "0.0.0.0"
    port: int = 8080
    transport: str = "sse"

    @property
    def credentials(self) -> Credentials:
        return Credentials(organization=self.organization, project=self.project, pat=self.pat)


def _read_yaml(path: Path) -> dict:
    try:
        with open(path, encoding="utf-8") as f:
            data = yaml.safe_load(f) or {}
    except OSError as e:
        raise ConfigError(f"Cannot read config file {path}: {e}") from e
    except yaml.YAMLError as e:
        raise ConfigError(f"Malformed config file {path}: {e}") from e
    if not isinstance(data, dict):
        raise ConfigError(f"Config file {path} must contain a mapping")
    return data


def load_settings(path: str | Path | None = None, env: dict[str, str] | None = None) -> Settings:
    """Build Settings from `.env`, an optional YAML file and the environment.

    An explicitly given path must exist; the default `config.yaml` is optional.
    Environment variables win over file values.
    """
    if env is None:
        load_dotenv()
        env = dict(os.environ)

    config_path = Path(path) if path is not None else DEFAULT_CONFIG_PATH
    if config_path.exists():
        logger.info("Reading config from %s", config_path)
        raw = _read_yaml(config_path)
    elif path is not None:
        raise ConfigError(f"Config file not found: {config_path}")
    else:
        raw = {}

    sections = {
        name: dict(raw.get(name) or {})
        for name in ("azure_devops", "server")
    }
    for var, (section, key) in ENV_OVERRIDES.items():
        value = env.get(var)
        if value:
            sections[section][key] = value

    ado = sections["azure_devops"]
    server = sections["server"]

    if not ado.get("pat"):
        raise ConfigError("Azure DevOps PAT is required (set AZURE_DEVOPS_PAT)")
    for key in ("organization", "project"):
        if not ado.get(key):
            raise ConfigError(f"azure_devops.{key} is required")

    try:
        port = int(server.get("port", 8080))
    except (TypeError, ValueError):
        raise ConfigError(f"server.port must be an integer, got {server.get('port')!r}")

    transport = server.get("transport", "sse")
    if transport not in TRANSPORTS:
        raise ConfigError(
            f"Unknown transport '{transport}'. Supported: {', '.join(TRANSPORTS)}"
        )

    return Settings(
        organization=str(ado["organization"]),
        project=str(ado["project"]),
        pat=str(ado["pat"]),
        api_version=str(ado.get("api_version") or DEFAULT_API_VERSION),
        host=str(server.get("host") or "0.0.0.0"),
        port=port,
        transport=transport,
    )
