"""Configuration management for HackMatch."""

from typing import Optional
from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class EventBusSettings(BaseSettings):
    """Event bus configuration settings."""

    model_config = SettingsConfigDict(env_prefix="HACKMATCH_BUS_")

    history_capacity: int = Field(
        default=10000,
        gt=0,
        description="Maximum number of events kept in the history buffer"
    )
    recent_window_seconds: float = Field(
        default=60.0,
        gt=0,
        description="Window used for the recent event rate statistic"
    )


class MatchingSettings(BaseSettings):
    """Skill matching configuration settings."""

    model_config = SettingsConfigDict(env_prefix="HACKMATCH_MATCHING_")

    candidate_pool_limit: int = Field(
        default=50,
        gt=0,
        description="Maximum number of candidates scored per request"
    )
    open_team_limit: int = Field(
        default=20,
        gt=0,
        description="Maximum number of open teams scored per request"
    )
    user_score_threshold: float = Field(
        default=0.3,
        description="Minimum score for an individual suggestion"
    )
    team_score_threshold: float = Field(
        default=0.2,
        description="Minimum score for a team suggestion"
    )
    max_user_suggestions: int = Field(default=10, gt=0)
    max_team_suggestions: int = Field(default=8, gt=0)
    default_team_size: int = Field(default=4, gt=0)
    skill_tables_path: Optional[str] = Field(
        default=None,
        description="Path to a JSON file overriding the bundled skill tables"
    )


class FormationSettings(BaseSettings):
    """Team formation and optimizer settings."""

    model_config = SettingsConfigDict(env_prefix="HACKMATCH_FORMATION_")

    min_team_size: int = Field(default=2, gt=0)
    max_team_size: int = Field(default=6, gt=0)
    population_size: int = Field(
        default=20,
        ge=2,
        description="Genetic algorithm population size"
    )
    generations: int = Field(
        default=10,
        ge=0,
        description="Number of genetic algorithm generations"
    )
    mutation_rate: float = Field(
        default=0.1,
        ge=0.0,
        le=1.0,
        description="Probability of mutating an offspring"
    )
    auto_form_threshold: float = Field(
        default=0.5,
        description="Minimum team score required to create a team automatically"
    )
    manual_suggestion_limit: int = Field(
        default=10,
        gt=0,
        description="Number of candidates included in a manual suggestion"
    )
    random_seed: Optional[int] = Field(
        default=None,
        description="Seed for the optimizer random source (None for entropy)"
    )


class AgentSettings(BaseSettings):
    """Agent supervision settings."""

    model_config = SettingsConfigDict(env_prefix="HACKMATCH_AGENTS_")

    restart_delay: float = Field(
        default=1.0,
        ge=0.0,
        description="Seconds to wait between stop and start on restart"
    )
    inactivity_threshold: float = Field(
        default=300.0,
        gt=0,
        description="Seconds without activity before a running agent is reported"
    )


class MonitoringSettings(BaseSettings):
    """Logging settings."""

    model_config = SettingsConfigDict(env_prefix="HACKMATCH_")

    log_level: str = Field(
        default="INFO",
        description="Logging level"
    )
    json_logs: bool = Field(
        default=False,
        description="Render log lines as JSON"
    )


class Settings(BaseSettings):
    """Main application settings."""

    model_config = SettingsConfigDict(
        env_prefix="HACKMATCH_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore"
    )

    environment: str = Field(
        default="development",
        description="Application environment"
    )

    # Sub-settings
    bus: EventBusSettings = Field(default_factory=EventBusSettings)
    matching: MatchingSettings = Field(default_factory=MatchingSettings)
    formation: FormationSettings = Field(default_factory=FormationSettings)
    agents: AgentSettings = Field(default_factory=AgentSettings)
    monitoring: MonitoringSettings = Field(default_factory=MonitoringSettings)


# Global settings instance - will be initialized when needed
settings: Optional[Settings] = None


def get_settings() -> Settings:
    """Get or create global settings instance."""
    global settings
    if settings is None:
        settings = Settings()
    return settings
