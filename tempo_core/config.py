"""
Configuration management with environment variable support and validation.

Design principles:
- Environment-specific configs (dev, staging, prod)
- Validation at startup (fail fast)
- Type safety with Pydantic
- Every scoring constant that needs product sign-off lives here, not in code
"""

import os
from functools import lru_cache
from typing import Literal, cast

from dotenv import load_dotenv
from pydantic import BaseModel, Field, model_validator

from tempo_core.domain.reference import Sex

# Load environment variables from .env file
load_dotenv()


class BaselineConfig(BaseModel):
    """Rolling window sizes and minimum sample counts per baseline metric."""

    hrv_window_days: int = Field(default=30, gt=0)
    resting_hr_window_days: int = Field(default=30, gt=0)
    rhythm_window_days: int = Field(default=7, gt=0)

    hrv_min_samples: int = Field(default=14, gt=0)
    resting_hr_min_samples: int = Field(default=7, gt=0)
    rhythm_min_samples: int = Field(default=7, gt=0)


class SleepScoringConfig(BaseModel):
    """Sleep score bands and the missing-data substitution ratios."""

    ideal_bedtime_hour: float = Field(default=23.0, ge=0.0, lt=24.0)
    bedtime_tolerance_hours: float = Field(default=1.0, ge=0.0)

    fallback_deep_ratio: float = Field(
        default=0.17, ge=0.0, le=1.0, description="Deep sleep share assumed when not reported"
    )
    fallback_rem_ratio: float = Field(
        default=0.22, ge=0.0, le=1.0, description="REM share assumed when not reported"
    )
    fallback_efficiency: float = Field(
        default=0.85, gt=0.0, le=1.0, description="Efficiency assumed when time in bed is missing"
    )


class HRVScoringConfig(BaseModel):
    """HRV score parameters, including the cold-start population reference."""

    deviation_band: float = Field(default=0.20, gt=0.0)
    bonus_slope: float = Field(default=50.0, gt=0.0, description="Points per unit deviation")
    penalty_multiplier: float = Field(
        default=2.0,
        gt=0.0,
        description="How much steeper low HRV is punished than high is rewarded",
    )

    resting_hr_tolerance: float = Field(default=0.05, ge=0.0)
    resting_hr_ceiling: float = Field(
        default=0.25, gt=0.0, description="Relative rise in resting HR where the component hits 0"
    )

    reference_age: int = Field(default=30, gt=0, lt=120)
    reference_sex: Sex = Field(default="male")

    @model_validator(mode="after")
    def ceiling_above_tolerance(self) -> "HRVScoringConfig":
        if self.resting_hr_ceiling <= self.resting_hr_tolerance:
            raise ValueError("resting_hr_ceiling must be greater than resting_hr_tolerance")
        return self


class RhythmScoringConfig(BaseModel):
    """Circadian rhythm score parameters."""

    stability_full_minutes: float = Field(default=30.0, ge=0.0)
    stability_ceiling_minutes: float = Field(
        default=120.0,
        gt=0.0,
        description="Std dev where stability reaches 0 (pending product confirmation)",
    )
    weekend_shift_full_hours: float = Field(default=1.0, ge=0.0)
    weekend_shift_ceiling_hours: float = Field(default=3.0, gt=0.0)
    ideal_window_start_hour: float = Field(default=22.0, ge=0.0, lt=24.0)
    ideal_window_end_hour: float = Field(default=6.0, ge=0.0, lt=24.0)
    nights: int = Field(default=7, gt=1, description="Nights scored per day")

    @model_validator(mode="after")
    def ceilings_above_plateaus(self) -> "RhythmScoringConfig":
        if self.stability_ceiling_minutes <= self.stability_full_minutes:
            raise ValueError("stability_ceiling_minutes must exceed stability_full_minutes")
        if self.weekend_shift_ceiling_hours <= self.weekend_shift_full_hours:
            raise ValueError("weekend_shift_ceiling_hours must exceed weekend_shift_full_hours")
        return self


class ActivityScoringConfig(BaseModel):
    step_target: int = Field(default=8000, gt=0)
    active_minutes_target: float = Field(default=30.0, gt=0.0)
    sedentary_break_target: float = Field(
        default=16.0, gt=0.0, description="One break per waking hour over 16 hours"
    )


class BalanceConfig(BaseModel):
    """Autonomic balance curve resolution and gap handling."""

    gap_threshold_minutes: float = Field(default=30.0, gt=0.0)
    min_heart_rate_bpm: float = Field(default=25.0, gt=0.0)


class TrendConfig(BaseModel):
    window_days: int = Field(default=7, gt=0)
    change_threshold: float = Field(default=0.05, gt=0.0)


class ServiceConfig(BaseModel):
    """Daily scoring fan-out settings."""

    max_concurrent_days: int = Field(
        default=8, gt=0, description="Days scored concurrently once baselines are final"
    )


class LoggingConfig(BaseModel):
    """Logging configuration."""

    level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = Field(
        default="INFO", description="Logging level"
    )
    format: Literal["json", "console"] = Field(default="json", description="Logging format")


class AppConfig(BaseModel):
    """Main application configuration combining all subsystems."""

    # Environment
    environment: Literal["development", "staging", "production"] = Field(
        default="development", description="Environment"
    )
    debug: bool = Field(default=False, description="Enable debug mode")

    # Component configs
    baselines: BaselineConfig = Field(default_factory=BaselineConfig)
    sleep: SleepScoringConfig = Field(default_factory=SleepScoringConfig)
    hrv: HRVScoringConfig = Field(default_factory=HRVScoringConfig)
    rhythm: RhythmScoringConfig = Field(default_factory=RhythmScoringConfig)
    activity: ActivityScoringConfig = Field(default_factory=ActivityScoringConfig)
    balance: BalanceConfig = Field(default_factory=BalanceConfig)
    trend: TrendConfig = Field(default_factory=TrendConfig)
    service: ServiceConfig = Field(default_factory=ServiceConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)

    @model_validator(mode="after")
    def debug_only_in_dev(self) -> "AppConfig":
        """Ensure debug mode is only allowed in development environment."""
        if self.debug and self.environment != "development":
            raise ValueError("debug mode is only allowed in development environment")
        return self


def load_config_from_env() -> AppConfig:
    """Load configuration from environment variables with validation."""

    def _env_to_literal(val: str) -> Literal["development", "staging", "production"]:
        v = val.strip().lower()
        if v in {"dev", "development"}:
            return "development"
        if v in {"stage", "staging"}:
            return "staging"
        return "production"

    def _level_to_literal(val: str) -> Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]:
        v = val.strip().upper()
        return cast(
            Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"],
            v if v in {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"} else "INFO",
        )

    def _sex_to_literal(val: str) -> Sex:
        return "female" if val.strip().lower() in {"f", "female"} else "male"

    # Detect environment
    environment = _env_to_literal(os.getenv("ENVIRONMENT", "development"))
    debug = environment == "development"

    baseline_config = BaselineConfig(
        hrv_window_days=int(os.getenv("HRV_WINDOW_DAYS", "30")),
        resting_hr_window_days=int(os.getenv("RESTING_HR_WINDOW_DAYS", "30")),
        rhythm_window_days=int(os.getenv("RHYTHM_WINDOW_DAYS", "7")),
        hrv_min_samples=int(os.getenv("HRV_MIN_SAMPLES", "14")),
    )

    hrv_config = HRVScoringConfig(
        reference_age=int(os.getenv("REFERENCE_AGE", "30")),
        reference_sex=_sex_to_literal(os.getenv("REFERENCE_SEX", "male")),
    )

    rhythm_config = RhythmScoringConfig(
        stability_ceiling_minutes=float(os.getenv("RHYTHM_STABILITY_CEILING_MINUTES", "120.0")),
    )

    activity_config = ActivityScoringConfig(
        step_target=int(os.getenv("STEP_TARGET", "8000")),
    )

    service_config = ServiceConfig(
        max_concurrent_days=int(os.getenv("MAX_CONCURRENT_DAYS", "8")),
    )

    # Logging config
    logging_config = LoggingConfig(
        level=_level_to_literal(os.getenv("LOG_LEVEL", "INFO")),
        format="console" if debug else "json",
    )

    # Application config
    return AppConfig(
        environment=environment,
        debug=debug,
        baselines=baseline_config,
        hrv=hrv_config,
        rhythm=rhythm_config,
        activity=activity_config,
        service=service_config,
        logging=logging_config,
    )


@lru_cache
def get_config() -> AppConfig:
    """Get cached application configuration."""
    return load_config_from_env()


# Configuration validation and helpers
def validate_config() -> None:
    """Validate configuration at startup."""
    try:
        config = get_config()
        print(f"Configuration loaded for {config.environment} environment")
    except Exception as e:
        print(f"Configuration validation failed: {e}")
        raise


# Development helpers
def print_config_summary() -> None:
    """Print configuration summary for debugging."""
    config = get_config()

    print("\nCONFIGURATION SUMMARY")
    print(f"Environment: {config.environment}")
    print(f"Debug Mode: {config.debug}")
    print(f"Log Level: {config.logging.level}")

    print("\nBASELINES")
    print(f"HRV Window: {config.baselines.hrv_window_days}d")
    print(f"HRV Minimum Samples: {config.baselines.hrv_min_samples}")
    print(f"Resting HR Window: {config.baselines.resting_hr_window_days}d")
    print(f"Rhythm Window: {config.baselines.rhythm_window_days}d")

    print("\nSCORING")
    print(f"Step Target: {config.activity.step_target}")
    print(f"Rhythm Stability Ceiling: {config.rhythm.stability_ceiling_minutes}m")
    print(f"Reference Profile: {config.hrv.reference_sex}, age {config.hrv.reference_age}")


if __name__ == "__main__":
    # Test configuration loading
    validate_config()
    print_config_summary()
