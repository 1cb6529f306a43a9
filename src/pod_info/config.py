from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

try:
    import tomllib
except ModuleNotFoundError:  # pragma: no cover
    import tomli as tomllib

import yaml

from pod_info.errors import ConfigError
from pod_info.registry_client import DEFAULT_REGISTRY_URL, RegistryAuth, RegistrySettings

CONFIG_TABLE = "pod_info"
DEFAULT_CONFIG_NAMES = (
    ".pod-info.toml",
    ".pod-info.yaml",
    ".pod-info.yml",
    "pod-info.toml",
    "pod-info.yaml",
    "pod-info.yml",
)


@dataclass(frozen=True, slots=True)
class AppConfig:
    """
    pod-info 的运行配置（可来自配置文件、环境变量与 CLI 参数合并）。
    """

    registry: RegistrySettings = field(default_factory=RegistrySettings)


def find_config_file(directory: Path) -> Path | None:
    """
    按 DEFAULT_CONFIG_NAMES 的顺序在目录中查找配置文件。
    """
    return next((directory / n for n in DEFAULT_CONFIG_NAMES if (directory / n).is_file()), None)


def read_config_table(path: Path) -> dict[str, Any]:
    """
    读取配置文件中的 [pod_info] 表；文件缺失、格式不支持或无法解析时抛出 ConfigError。
    """
    suffix = path.suffix.lower()
    try:
        text = path.read_text(encoding="utf-8")
        if suffix == ".toml":
            data = tomllib.loads(text)
        elif suffix in {".yaml", ".yml"}:
            data = yaml.safe_load(text)
        else:
            raise ConfigError(f"不支持的配置文件格式：{path}")
    except (OSError, UnicodeDecodeError, tomllib.TOMLDecodeError, yaml.YAMLError) as exc:
        raise ConfigError(f"无法读取配置文件 {path}：{exc}") from exc

    table = data.get(CONFIG_TABLE) if isinstance(data, dict) else None
    return table if isinstance(table, dict) else {}


def _setting(table: dict[str, Any], key: str, env: str | None = None) -> str | None:
    """
    依次从环境变量与配置表取字符串设置，空值视为未设置。
    """
    if env and os.environ.get(env):
        return os.environ[env]
    value = table.get(key)
    return str(value) if value else None


def _registry_list(table: dict[str, Any]) -> tuple[str, ...]:
    """
    额外注册表列表：环境变量（逗号分隔）优先于配置表。
    """
    raw = os.environ.get("POD_INFO_EXTRA_REGISTRY_URLS")
    if raw:
        return tuple(u.strip() for u in raw.split(",") if u.strip())
    return tuple(str(u) for u in table.get("extra_registry_urls") or [])


def load_config(config_path: str | None) -> AppConfig:
    """
    从配置文件与环境变量加载 AppConfig。
    """
    path = Path(config_path) if config_path else find_config_file(Path.cwd())
    table = read_config_table(path) if path is not None else {}

    bearer = _setting(table, "bearer_token", "POD_INFO_BEARER_TOKEN")
    basic_user = _setting(table, "basic_username", "POD_INFO_BASIC_USERNAME")
    basic_pass = _setting(table, "basic_password", "POD_INFO_BASIC_PASSWORD")
    auth = None
    if bearer or (basic_user is not None and basic_pass is not None):
        auth = RegistryAuth(bearer_token=bearer, basic_username=basic_user, basic_password=basic_pass)

    settings = RegistrySettings(
        registry_url=_setting(table, "registry_url", "POD_INFO_REGISTRY_URL") or DEFAULT_REGISTRY_URL,
        extra_registry_urls=_registry_list(table),
        timeout_s=float(table.get("timeout_s") or 10.0),
        include_prereleases=bool(table.get("include_prereleases") or False),
        auth=auth,
    )
    return AppConfig(registry=settings)
