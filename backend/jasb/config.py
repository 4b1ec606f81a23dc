"""Configuration management using Pydantic Settings."""

import logging
from datetime import timedelta
from functools import lru_cache
from pathlib import Path

import yaml
from pydantic import BaseModel, Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

logger = logging.getLogger(__name__)


class DatabaseConfig(BaseModel):
    """Database connection parameters."""

    url: str = "postgresql+asyncpg://jasb@localhost:5432/jasb"
    echo: bool = False
    pool_size: int = 5
    max_overflow: int = 10


class RulesConfig(BaseModel):
    """Wagering rules enforced by the ledger."""

    initial_balance: int = 1000
    max_stake_while_in_debt: int = 100  # also the deepest balance staking may reach
    notable_stake: int = 500  # stakes this big may carry a public message
    min_stake: int = 1
    leaderboard_size: int = 100


class AuthConfig(BaseModel):
    """Session lifetime and token parameters."""

    session_lifetime_days: int = 7
    session_id_size: int = 64

    @property
    def session_lifetime(self) -> timedelta:
        return timedelta(days=self.session_lifetime_days)


class NotifierConfig(BaseModel):
    """External feed relay (webhook) configuration."""

    webhook_url: str = ""
    timeout_seconds: float = 10.0


class Settings(BaseSettings):
    """Main configuration class."""

    # Paths
    data_dir: Path = Path("data")

    # Application
    environment: str = "development"
    debug: bool = False
    host: str = "0.0.0.0"
    port: int = 8081
    allowed_origins: str = "http://localhost:8080"
    log_level: str = "INFO"

    # Observability
    logfire_token: str = ""

    # Nested configuration sections
    database: DatabaseConfig = Field(default_factory=DatabaseConfig)
    rules: RulesConfig = Field(default_factory=RulesConfig)
    auth: AuthConfig = Field(default_factory=AuthConfig)
    notifier: NotifierConfig = Field(default_factory=NotifierConfig)

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        env_nested_delimiter="__",
        case_sensitive=False,
        extra="ignore",
    )

    @field_validator("data_dir", mode="after")
    @classmethod
    def resolve_data_dir(cls, v: Path) -> Path:
        """Resolve data directory to absolute path."""
        return v.resolve()

    @property
    def origins(self) -> list[str]:
        """Parse comma-separated origins into a list."""
        return [o.strip() for o in self.allowed_origins.split(",") if o.strip()]

    @property
    def is_development(self) -> bool:
        return self.environment.lower() == "development"

    def load_yaml_config(self) -> None:
        """Load and merge YAML configuration."""
        config_path = self.data_dir / "config.yaml"

        if not config_path.exists():
            logger.debug(f"Config file not found: {config_path}. Using defaults.")
            return

        try:
            with open(config_path, "r", encoding="utf-8") as f:
                yaml_config = yaml.safe_load(f)

            if not yaml_config:
                logger.warning(f"Empty config file: {config_path}")
                return

            for section_name in ["database", "rules", "auth", "notifier"]:
                if section_name in yaml_config:
                    section = getattr(self, section_name)
                    section_dict = section.model_dump()
                    section_dict.update(yaml_config[section_name] or {})
                    setattr(self, section_name, section.__class__(**section_dict))

            logger.info(f"Loaded configuration from {config_path}")

        except yaml.YAMLError as e:
            logger.error(f"Failed to parse YAML config: {e}")
            raise


@lru_cache()
def get_settings() -> Settings:
    """Get singleton Settings instance."""
    settings = Settings()
    settings.load_yaml_config()
    return settings
