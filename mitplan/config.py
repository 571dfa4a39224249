from functools import lru_cache

from pydantic import BaseModel, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

CONFLICT_STRATEGIES = frozenset({"latest_wins", "oldest_wins", "merge"})


class EngineConfig(BaseModel):
    default_level: int | None = 100  # None = base values only
    stack_capacity: int = 3
    stack_refill_interval: float = 60.0  # used when no provider ability defines one


class CollaborationConfig(BaseModel):
    editor_id: str = "local"
    pending_timeout_seconds: float = 5.0
    conflict_strategy: str = "latest_wins"


class CatalogueConfig(BaseModel):
    path: str = ""  # empty = built-in catalogue


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        env_nested_delimiter="__",
    )

    debug: bool = False
    log_level: str = "INFO"
    api_key: str = ""  # empty = auth disabled
    engine: EngineConfig = EngineConfig()
    collaboration: CollaborationConfig = CollaborationConfig()
    catalogue: CatalogueConfig = CatalogueConfig()

    @model_validator(mode="after")
    def _check_cross_field_deps(self):
        if self.engine.stack_capacity < 1:
            raise ValueError("ENGINE__STACK_CAPACITY must be >= 1")
        if self.engine.stack_refill_interval <= 0:
            raise ValueError("ENGINE__STACK_REFILL_INTERVAL must be > 0")
        if self.collaboration.pending_timeout_seconds <= 0:
            raise ValueError(
                "COLLABORATION__PENDING_TIMEOUT_SECONDS must be > 0"
            )
        if self.collaboration.conflict_strategy not in CONFLICT_STRATEGIES:
            raise ValueError(
                "COLLABORATION__CONFLICT_STRATEGY must be one of "
                + ", ".join(sorted(CONFLICT_STRATEGIES))
            )
        return self


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    return Settings()
