from pydantic_settings import BaseSettings
from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator
from typing import Optional
from functools import lru_cache
import json


class OptimizerConfig(BaseModel):
    """
    Tuning constants for the location optimizer.

    Immutable once built; every optimizer component receives one at
    construction so weights and thresholds can vary per warehouse or tenant.
    """
    model_config = ConfigDict(frozen=True)

    # Scoring weights (must sum to 1)
    distance_weight: float = Field(0.4, ge=0, le=1)
    capacity_weight: float = Field(0.3, ge=0, le=1)
    compatibility_weight: float = Field(0.2, ge=0, le=1)
    fefo_weight: float = Field(0.1, ge=0, le=1)

    target_utilization: float = Field(0.85, gt=0, le=1)
    abc_zone_bonus: float = 10.0
    fast_mover_off_face_penalty: float = 30.0
    slow_mover_on_face_penalty: float = 20.0
    reserved_sku_bonus: float = 20.0
    empty_location_bonus: float = 10.0
    fefo_violation_penalty: float = 50.0
    default_max_distance: float = Field(1000.0, gt=0)
    max_suggestions: int = Field(10, ge=1)

    # ABC classification (cumulative revenue share)
    abc_a_threshold: float = 0.80
    abc_b_threshold: float = 0.95

    # Slotting
    slotting_min_impact_threshold: float = Field(10.0, ge=0)
    slotting_max_recommendations: int = Field(50, ge=1)
    slotting_recommended_locations: int = Field(3, ge=1)
    slotting_lookback_days: int = Field(365, ge=1)
    picking_time_factor: float = 0.5
    cost_per_pick: float = 2.0

    # Replenishment (fraction of capacity)
    replenishment_min_threshold: float = 0.20
    replenishment_max_threshold: float = 0.90
    replenishment_urgent_threshold: float = 0.10
    replenishment_high_threshold: float = 0.15
    replenishment_minutes_per_task: int = 10

    # Route sequencing
    minutes_per_meter: float = 0.5
    minutes_per_stop: float = 2.0
    baseline_meters_per_stop: float = 15.0
    minutes_saved_per_stop: float = 0.3
    wave_minutes_per_line: float = 2.5

    distance_model: str = "zone_aisle"

    @field_validator("distance_model")
    @classmethod
    def validate_distance_model(cls, v):
        if v not in ("zone_aisle", "coordinates"):
            raise ValueError("distance_model must be 'zone_aisle' or 'coordinates'")
        return v

    @model_validator(mode="after")
    def validate_thresholds(self):
        total = (
            self.distance_weight + self.capacity_weight
            + self.compatibility_weight + self.fefo_weight
        )
        if abs(total - 1.0) > 1e-6:
            raise ValueError(f"Scoring weights must sum to 1.0, got {total:.4f}")
        if not 0 < self.abc_a_threshold < self.abc_b_threshold <= 1:
            raise ValueError("ABC thresholds must satisfy 0 < A < B <= 1")
        if not 0 <= self.replenishment_min_threshold < self.replenishment_max_threshold <= 1:
            raise ValueError("Replenishment thresholds must satisfy 0 <= min < max <= 1")
        if not (
            self.replenishment_urgent_threshold
            <= self.replenishment_high_threshold
            <= self.replenishment_min_threshold
        ):
            raise ValueError("Replenishment tiers must satisfy urgent <= high <= min")
        return self


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # Database
    DATABASE_URL: str

    # Database Connection Pool Settings
    DB_POOL_SIZE: int = 10  # Base number of connections in pool
    DB_MAX_OVERFLOW: int = 20  # Extra connections allowed beyond pool_size
    DB_POOL_TIMEOUT: int = 30  # Seconds to wait for connection from pool
    DB_POOL_RECYCLE: int = 1800  # Recycle connections after 30 minutes

    # App Settings
    APP_NAME: str = "WMS Location Optimizer"
    APP_VERSION: str = "1.0.0"
    DEBUG: bool = False
    LOG_LEVEL: str = "INFO"

    # CORS - accepts JSON string, comma-separated, or list
    CORS_ORIGINS: list[str] = [
        "http://localhost:3000",
        "http://localhost:5173",
    ]

    # Multi-tenancy (schema per tenant)
    MULTI_TENANT_ENABLED: bool = True
    DEFAULT_SCHEMA: str = "public"

    # Scheduler
    SCHEDULER_ENABLED: bool = True
    SCHEDULER_TIMEZONE: str = "UTC"
    REPLENISHMENT_JOB_INTERVAL_MINUTES: int = 30  # How often to plan replenishment

    # Optimizer overrides (None keeps the built-in default)
    OPTIMIZER_DISTANCE_MODEL: str = "zone_aisle"
    OPTIMIZER_TARGET_UTILIZATION: Optional[float] = None
    OPTIMIZER_ABC_A_THRESHOLD: Optional[float] = None
    OPTIMIZER_ABC_B_THRESHOLD: Optional[float] = None
    OPTIMIZER_REPLENISHMENT_MIN_THRESHOLD: Optional[float] = None
    OPTIMIZER_REPLENISHMENT_MAX_THRESHOLD: Optional[float] = None
    OPTIMIZER_SLOTTING_LOOKBACK_DAYS: Optional[int] = None
    OPTIMIZER_COST_PER_PICK: Optional[float] = None

    @field_validator('CORS_ORIGINS', mode='before')
    @classmethod
    def parse_cors_origins(cls, v):
        if isinstance(v, str):
            try:
                return json.loads(v)
            except json.JSONDecodeError:
                return [origin.strip() for origin in v.split(',')]
        return v

    @property
    def cors_origins_list(self) -> list[str]:
        return self.CORS_ORIGINS

    def optimizer_config(self) -> OptimizerConfig:
        """Build the optimizer configuration from OPTIMIZER_* overrides."""
        overrides = {
            "distance_model": self.OPTIMIZER_DISTANCE_MODEL,
            "target_utilization": self.OPTIMIZER_TARGET_UTILIZATION,
            "abc_a_threshold": self.OPTIMIZER_ABC_A_THRESHOLD,
            "abc_b_threshold": self.OPTIMIZER_ABC_B_THRESHOLD,
            "replenishment_min_threshold": self.OPTIMIZER_REPLENISHMENT_MIN_THRESHOLD,
            "replenishment_max_threshold": self.OPTIMIZER_REPLENISHMENT_MAX_THRESHOLD,
            "slotting_lookback_days": self.OPTIMIZER_SLOTTING_LOOKBACK_DAYS,
            "cost_per_pick": self.OPTIMIZER_COST_PER_PICK,
        }
        return OptimizerConfig(**{k: v for k, v in overrides.items() if v is not None})

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"
        case_sensitive = True


@lru_cache()
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()


settings = get_settings()
