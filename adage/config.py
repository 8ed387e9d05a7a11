"""
Configuration management for ADAGE.

This module provides centralized configuration for all engine components:
- Effectiveness tracking weights and thresholds
- Pattern matching factor weights and confidence nudges
- Evolution and A/B test decision thresholds
- Logging settings
"""

import os
from enum import Enum
from typing import Literal, cast

from dotenv import load_dotenv
from pydantic import BaseModel, Field

# Load environment variables from .env file
load_dotenv()


class SuccessCriterion(str, Enum):
    """Which outcome categories count as a success in an A/B test arm."""

    STRICT = "strict"  # Only SUCCESS
    LENIENT = "lenient"  # SUCCESS or PARTIAL_SUCCESS


class EffectivenessConfig(BaseModel):
    """Configuration for recency-weighted effectiveness tracking."""

    real_world_multiplier: float = Field(
        default=1.5, gt=0.0, description="Extra weight applied to real-world outcomes"
    )
    improvement_threshold: float = Field(
        default=0.6,
        ge=0.0,
        le=1.0,
        description="Scores below this mark a guideline as needing improvement",
    )
    trend_window: int = Field(
        default=3, ge=2, description="Number of recent measurements inspected for a trend"
    )
    trend_drop_threshold: float = Field(
        default=0.1,
        ge=0.0,
        le=1.0,
        description="Drop across the trend window that counts as a decline",
    )
    min_significant_samples: int = Field(
        default=5, gt=0, description="Measurements required for statistical significance"
    )
    default_baseline: float = Field(
        default=0.7, ge=0.0, le=1.0, description="Baseline score for untracked guidelines"
    )
    success_rate_weight: float = Field(
        default=0.4, ge=0.0, le=1.0, description="Experience success-rate weight"
    )
    time_efficiency_weight: float = Field(
        default=0.3, ge=0.0, le=1.0, description="Experience time-efficiency weight"
    )
    code_quality_weight: float = Field(
        default=0.3, ge=0.0, le=1.0, description="Experience code-quality weight"
    )


class PatternConfig(BaseModel):
    """Configuration for error pattern matching."""

    error_type_weight: float = Field(default=0.4, ge=0.0, le=1.0)
    message_weight: float = Field(default=0.3, ge=0.0, le=1.0)
    stack_trace_weight: float = Field(default=0.2, ge=0.0, le=1.0)
    class_method_weight: float = Field(default=0.1, ge=0.0, le=1.0)
    match_threshold: float = Field(
        default=0.3, ge=0.0, le=1.0, description="Minimum weighted score for a match"
    )
    success_boost: float = Field(
        default=0.05, ge=0.0, le=1.0, description="Confidence gain on a successful match"
    )
    failure_penalty: float = Field(
        default=0.02, ge=0.0, le=1.0, description="Confidence loss on a failed match"
    )
    min_active_confidence: float = Field(
        default=0.3, ge=0.0, le=1.0, description="Patterns below this confidence are inactive"
    )
    active_window_days: int = Field(
        default=30, gt=0, description="Patterns unseen for longer than this are inactive"
    )
    initial_confidence: float = Field(
        default=0.7, ge=0.0, le=1.0, description="Confidence of newly learned patterns"
    )
    excellent_threshold: float = Field(default=0.9, ge=0.0, le=1.0)
    good_threshold: float = Field(default=0.7, ge=0.0, le=1.0)
    fair_threshold: float = Field(default=0.5, ge=0.0, le=1.0)
    poor_threshold: float = Field(default=0.3, ge=0.0, le=1.0)
    application_package: str = Field(
        default="com.globalcarelink",
        description="Package prefix identifying application frames in stack traces",
    )


class EvolutionConfig(BaseModel):
    """Configuration for guideline evolution decisions."""

    outdated_after_days: int = Field(
        default=180, gt=0, description="Guidelines older than this are queued for review"
    )
    require_significant_sample: bool = Field(
        default=True,
        description="Only propose candidates once the tracker has a significant sample",
    )
    promotion_improvement_threshold: float = Field(
        default=0.15,
        ge=0.0,
        description="Relative A/B improvement required before promoting a candidate",
    )
    default_required_sample_size: int = Field(
        default=30, gt=0, description="Sample size for automatically started A/B tests"
    )


class ABTestConfig(BaseModel):
    """Configuration for two-arm guideline A/B tests."""

    success_threshold: float = Field(
        default=0.5, ge=0.0, le=1.0, description="Score at or above which a run succeeded"
    )
    partial_success_threshold: float = Field(
        default=0.3,
        ge=0.0,
        le=1.0,
        description="Score at or above which a run partially succeeded",
    )
    success_criterion: SuccessCriterion = Field(
        default=SuccessCriterion.STRICT,
        description="Outcome categories counted as successes",
    )
    confidence_threshold: float = Field(
        default=0.95,
        ge=0.0,
        le=1.0,
        description="Confidence level required for statistical significance",
    )


class LogConfig(BaseModel):
    """Configuration for logging system."""

    level: Literal["TRACE", "DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = Field(
        default="INFO", description="Logging level"
    )
    format: str = Field(
        default="<green>{time:YYYY-MM-DD HH:mm:ss}</green> | "
        "<level>{level: <8}</level> | "
        "<cyan>{name}</cyan>:<cyan>{function}</cyan> - "
        "<level>{message}</level>",
        description="Log message format",
    )
    rotation: str = Field(default="100 MB", description="Log file rotation size")
    retention: str = Field(default="1 month", description="Log file retention period")
    log_dir: str = Field(default="logs", description="Directory for log files")
    enable_file_logging: bool = Field(
        default=False, description="Whether to enable file logging"
    )
    enable_console_logging: bool = Field(
        default=True, description="Whether to enable console logging"
    )


class Config(BaseModel):
    """Main configuration object for the ADAGE engine."""

    effectiveness: EffectivenessConfig = Field(default_factory=EffectivenessConfig)
    patterns: PatternConfig = Field(default_factory=PatternConfig)
    evolution: EvolutionConfig = Field(default_factory=EvolutionConfig)
    ab_testing: ABTestConfig = Field(default_factory=ABTestConfig)
    logging: LogConfig = Field(default_factory=LogConfig)

    @classmethod
    def from_env(cls) -> "Config":
        """Create configuration from environment variables."""
        return cls(
            effectiveness=EffectivenessConfig(
                improvement_threshold=float(os.getenv("ADAGE_IMPROVEMENT_THRESHOLD", "0.6")),
            ),
            patterns=PatternConfig(
                match_threshold=float(os.getenv("ADAGE_MATCH_THRESHOLD", "0.3")),
            ),
            evolution=EvolutionConfig(
                outdated_after_days=int(os.getenv("ADAGE_OUTDATED_AFTER_DAYS", "180")),
            ),
            ab_testing=ABTestConfig(
                success_threshold=float(os.getenv("ADAGE_AB_SUCCESS_THRESHOLD", "0.5")),
                confidence_threshold=float(os.getenv("ADAGE_AB_CONFIDENCE_THRESHOLD", "0.95")),
            ),
            logging=LogConfig(
                level=cast(
                    Literal["TRACE", "DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"],
                    os.getenv("ADAGE_LOG_LEVEL", "INFO"),
                )
            ),
        )


# Global configuration instance
# This can be imported throughout the codebase
config = Config.from_env()
