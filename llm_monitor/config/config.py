"""
Configuration management

Loads configuration from a YAML file, with environment variable overrides
(LLM_MONITOR_ prefix, `__` between nesting levels) and .env support.
"""

import os
import yaml
from typing import Any, Dict, List, Optional
from pydantic import BaseModel, Field, field_validator
from dotenv import load_dotenv

from llm_monitor.monitoring.scrubber import DEFAULT_MASK, CustomPattern, ScrubbingConfig

# Load .env file
load_dotenv()

ENV_PREFIX = "LLM_MONITOR_"


class CustomPatternSettings(BaseModel):
    """One caller-supplied redaction rule"""

    pattern: str = Field(description="Regular expression to redact")
    replacement: Optional[str] = Field(default=None, description="Replacement text (mask_with if unset)")
    name: Optional[str] = Field(default=None, description="Rule name")


class ScrubbingSettings(BaseModel):
    """Content scrubbing configuration"""

    pii: bool = Field(default=True, description="Redact PII (email, phone, SSN, ...)")
    secrets: bool = Field(default=True, description="Redact secrets (API keys, tokens, ...)")
    custom_patterns: List[CustomPatternSettings] = Field(
        default_factory=list,
        description="Additional redaction rules, applied after the built-in ones"
    )
    exclude_fields: List[str] = Field(
        default_factory=list,
        description="Keys whose values are masked wholesale"
    )
    mask_with: str = Field(default=DEFAULT_MASK, description="Mask for excluded fields and custom rules")

    def to_scrubbing_config(self) -> ScrubbingConfig:
        """Convert to the immutable scrubber configuration"""
        return ScrubbingConfig(
            pii=self.pii,
            secrets=self.secrets,
            custom_patterns=tuple(
                CustomPattern(p.pattern, replacement=p.replacement, name=p.name)
                for p in self.custom_patterns
            ),
            exclude_fields=tuple(self.exclude_fields),
            mask_with=self.mask_with,
        )


class StoreConfig(BaseModel):
    """Event store configuration"""

    type: str = Field(default="memory", description="Store type (memory, file, sqlite)")
    path: Optional[str] = Field(default=None, description="JSONL file or SQLite database path")
    table_name: str = Field(default="monitoring_events", description="SQLite table name")
    create_tables: bool = Field(default=True, description="Create the SQLite table if missing")

    @field_validator("type")
    @classmethod
    def validate_type(cls, v: str) -> str:
        """Validate store type"""
        valid_types = ["memory", "file", "sqlite"]
        v = v.lower()
        if v not in valid_types:
            raise ValueError(f"Invalid store type: {v}. Must be one of {valid_types}")
        return v


class AggregationConfig(BaseModel):
    """Time series aggregation configuration"""

    bucket_minutes: int = Field(default=5, gt=0, description="Time series bucket width (minutes)")

    @property
    def bucket_size_ms(self) -> int:
        return self.bucket_minutes * 60 * 1000


class OTelConfig(BaseModel):
    """OpenTelemetry span processor configuration"""

    capture_content: bool = Field(default=True, description="Record prompts and responses from spans")
    max_workers: int = Field(default=4, gt=0, description="Background save workers")
    flush_timeout_ms: int = Field(default=30000, gt=0, description="force_flush timeout (ms)")


class APIConfig(BaseModel):
    """Dashboard query API configuration"""

    base_path: str = Field(default="/monitor", description="Mount prefix for the dashboard")
    default_limit: int = Field(default=50, gt=0, description="Default trace page size")
    max_limit: int = Field(default=500, gt=0, description="Maximum trace page size")
    cors_origins: List[str] = Field(default_factory=lambda: ["http://localhost:3000"], description="CORS allowed origins")

    @field_validator("base_path")
    @classmethod
    def normalize_base_path(cls, v: str) -> str:
        """Leading slash, no trailing slash"""
        v = v.strip().rstrip("/")
        if v and not v.startswith("/"):
            v = "/" + v
        return v


class LoggingConfig(BaseModel):
    """Logging configuration"""

    level: str = Field(default="INFO", description="Log level")
    file: Optional[str] = Field(default=None, description="Log file path (console only if unset)")
    max_bytes: int = Field(default=10485760, description="Max log file size (10MB)")
    backup_count: int = Field(default=5, description="Number of rotated log files")


class MonitorConfig(BaseModel):
    """llm-monitor configuration"""

    environment: str = Field(default="development", description="Runtime environment (development, production, test)")
    capture_content: bool = Field(default=False, description="Record message and response content")

    scrubbing: ScrubbingSettings = Field(default_factory=ScrubbingSettings)
    store: StoreConfig = Field(default_factory=StoreConfig)
    aggregation: AggregationConfig = Field(default_factory=AggregationConfig)
    otel: OTelConfig = Field(default_factory=OTelConfig)
    api: APIConfig = Field(default_factory=APIConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)

    @field_validator("environment")
    @classmethod
    def validate_environment(cls, v: str) -> str:
        """Validate environment"""
        valid_envs = ["development", "production", "test"]
        if v not in valid_envs:
            raise ValueError(f"Invalid environment: {v}. Must be one of {valid_envs}")
        return v


class ConfigManager:
    """
    Configuration manager

    Loads YAML configuration with environment variable overrides
    """

    def __init__(self, config_path: Optional[str] = None):
        """
        Initialize the configuration manager

        Args:
            config_path: YAML config path, searched for when not given
        """
        self.config_path = config_path or self._find_config_file()
        self._config: Optional[MonitorConfig] = None

    @staticmethod
    def _find_config_file() -> str:
        """
        Find the configuration file

        Search order:
        1. ./config/monitor.yaml
        2. ./monitor.yaml
        3. ~/.config/llm_monitor/monitor.yaml
        """
        possible_paths = [
            "./config/monitor.yaml",
            "./monitor.yaml",
            os.path.expanduser("~/.config/llm_monitor/monitor.yaml"),
        ]

        for path in possible_paths:
            if os.path.exists(path):
                return path

        return "./config/monitor.yaml"

    def load_yaml(self) -> Dict[str, Any]:
        """
        Load configuration from the YAML file

        Returns:
            Configuration dictionary ({} when the file does not exist)
        """
        if not os.path.exists(self.config_path):
            return {}

        with open(self.config_path, "r", encoding="utf-8") as f:
            return yaml.safe_load(f) or {}

    def _override_from_env(self, config_dict: Dict[str, Any]) -> Dict[str, Any]:
        """
        Override configuration from environment variables

        Nesting levels are separated by __, for example:
        LLM_MONITOR_STORE__TYPE=sqlite
        LLM_MONITOR_OTEL__MAX_WORKERS=8

        Args:
            config_dict: Configuration loaded from YAML

        Returns:
            Merged configuration dictionary
        """
        result = config_dict.copy()

        for env_key, env_value in os.environ.items():
            if not env_key.startswith(ENV_PREFIX):
                continue

            key = env_key[len(ENV_PREFIX):].replace("__", ".").lower()
            parts = key.split(".")

            current = result
            for part in parts[:-1]:
                if not isinstance(current.get(part), dict):
                    current[part] = {}
                else:
                    current[part] = dict(current[part])
                current = current[part]
            current[parts[-1]] = self._parse_env_value(env_value)

        return result

    @staticmethod
    def _parse_env_value(value: str) -> Any:
        """
        Parse an environment variable value

        Args:
            value: Raw value

        Returns:
            bool, int, float or the original string
        """
        if value.lower() in ("true", "yes"):
            return True
        if value.lower() in ("false", "no"):
            return False

        try:
            if "." in value:
                return float(value)
            return int(value)
        except ValueError:
            pass

        return value

    def load(self) -> MonitorConfig:
        """
        Load configuration

        YAML first, then environment overrides

        Returns:
            Configuration object
        """
        if self._config is not None:
            return self._config

        yaml_config = self.load_yaml()
        merged_config = self._override_from_env(yaml_config)

        self._config = MonitorConfig(**merged_config)
        return self._config

    def reload(self) -> MonitorConfig:
        """
        Reload configuration

        Returns:
            Configuration object
        """
        self._config = None
        return self.load()

    def save(self, path: Optional[str] = None) -> None:
        """
        Save the current configuration to a YAML file

        Args:
            path: Target path, defaults to the loaded config path
        """
        save_path = path or self.config_path

        directory = os.path.dirname(save_path)
        if directory:
            os.makedirs(directory, exist_ok=True)

        config_dict = self.load().model_dump(exclude_none=True)

        with open(save_path, "w", encoding="utf-8") as f:
            yaml.safe_dump(config_dict, f, allow_unicode=True, default_flow_style=False)


# Global configuration manager
_config_manager: Optional[ConfigManager] = None


def get_config(config_path: Optional[str] = None) -> MonitorConfig:
    """
    Get the global configuration

    Args:
        config_path: Optional YAML config path

    Returns:
        Configuration object
    """
    global _config_manager

    if _config_manager is None:
        _config_manager = ConfigManager(config_path)

    return _config_manager.load()


def get_config_manager() -> ConfigManager:
    """
    Get the global configuration manager

    Returns:
        Configuration manager
    """
    global _config_manager

    if _config_manager is None:
        _config_manager = ConfigManager()

    return _config_manager


def reload_config() -> MonitorConfig:
    """
    Reload the global configuration

    Returns:
        Configuration object
    """
    global _config_manager

    if _config_manager is not None:
        return _config_manager.reload()

    return get_config()
