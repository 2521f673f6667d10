"""
Configuration management

Type-safe configuration using Pydantic
"""

from pathlib import Path
from typing import Any, Dict, Optional

import yaml
from pydantic import BaseModel, ConfigDict, ValidationError, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict
from loguru import logger


class ApiKeysConfig(BaseModel):
    """API keys plugin configuration"""
    enabled: bool = True
    storage_path: str = "~/.keyvault/api-keys.json"
    clear_after_seconds: float = 30.0
    clipboard_backend: str = "system"  # system, memory

    @field_validator("clear_after_seconds")
    @classmethod
    def _positive_delay(cls, value: float) -> float:
        if value <= 0:
            raise ValueError("clear_after_seconds must be positive")
        return value

    @field_validator("clipboard_backend")
    @classmethod
    def _known_backend(cls, value: str) -> str:
        if value not in ("system", "memory"):
            raise ValueError(f"Unknown clipboard backend: {value}")
        return value

    def resolved_path(self) -> Path:
        """存储文件的绝对路径 (展开 ~)"""
        return Path(self.storage_path).expanduser()


class LoggingConfig(BaseModel):
    """Logging configuration"""
    level: str = "INFO"
    file: Optional[str] = None

    @field_validator("level")
    @classmethod
    def _known_level(cls, value: str) -> str:
        value = value.upper()
        if value not in ("TRACE", "DEBUG", "INFO", "SUCCESS", "WARNING", "ERROR", "CRITICAL"):
            raise ValueError(f"Unknown log level: {value}")
        return value


class PluginsConfig(BaseModel):
    """All plugins configuration"""
    model_config = ConfigDict(extra="allow")

    api_keys: ApiKeysConfig = ApiKeysConfig()


class Config(BaseSettings):
    """keyvault main configuration

    环境变量前缀 KEYVAULT_，嵌套分隔符 __，例如
    KEYVAULT_PLUGINS__API_KEYS__STORAGE_PATH 覆盖存储路径。
    """
    model_config = SettingsConfigDict(env_prefix="KEYVAULT_", env_nested_delimiter="__")

    name: str = "keyvault"
    debug: bool = False

    logging: LoggingConfig = LoggingConfig()
    plugins: PluginsConfig = PluginsConfig()

    @classmethod
    def settings_customise_sources(cls, settings_cls, init_settings, env_settings,
                                   dotenv_settings, file_secret_settings):
        # 环境变量优先于配置文件
        return env_settings, init_settings, dotenv_settings, file_secret_settings

    def plugin_configs(self) -> Dict[str, Dict[str, Any]]:
        """插件配置字典 {plugin_name: config}"""
        configs = self.plugins.model_dump()
        api_keys = configs.get("api_keys", {})
        api_keys["storage_path"] = str(self.plugins.api_keys.resolved_path())
        return configs

    @classmethod
    def load(cls, config_path: Optional[str] = None) -> "Config":
        """Load configuration from file

        Args:
            config_path: Path to config file, defaults to config/config.yaml

        Returns:
            Config instance
        """
        if config_path is None:
            paths = [
                Path("config/config.yaml"),
                Path("config.yaml"),
                Path.home() / ".keyvault/config.yaml",
            ]
            for path in paths:
                if path.exists():
                    config_path = str(path)
                    break

        if config_path and Path(config_path).exists():
            try:
                with open(config_path, "r", encoding="utf-8") as f:
                    data = yaml.safe_load(f) or {}
                return cls(**data)
            except (OSError, yaml.YAMLError, ValidationError, TypeError) as e:
                logger.error(f"Failed to load config from {config_path}: {e}")
                logger.info("Using default configuration")
                return cls()

        logger.info("No config file found, using default configuration")
        return cls()

    def save(self, config_path: str = "config/config.yaml"):
        """Save configuration to file"""
        Path(config_path).parent.mkdir(parents=True, exist_ok=True)
        with open(config_path, "w", encoding="utf-8") as f:
            yaml.dump(self.model_dump(), f, allow_unicode=True, sort_keys=False)
