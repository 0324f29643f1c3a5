"""Pydantic configuration models with env var support.

Configuration Hierarchy (highest to lowest precedence):
1. Direct kwargs to load_config()
2. Environment variables (TESTTREE__SECTION__KEY)
3. Workspace YAML (.testtree/config.yaml)
4. Global YAML (~/.config/testtree/config.yaml)
5. Built-in defaults (this file)

Examples:
    TESTTREE__LOGGING__LEVEL=DEBUG
    TESTTREE__MATCHER__MIN_SIMILARITY=0.5
    TESTTREE__WATCH__DEBOUNCE_MS=250
"""

from pathlib import Path
from typing import Literal

from pydantic import BaseModel, Field, field_validator

LogLevel = Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]


class LogOutputConfig(BaseModel):
    """Single logging output configuration."""

    format: Literal["json", "console"] = "console"
    destination: str = "stderr"  # stderr, stdout, or absolute file path
    level: LogLevel | None = None  # Inherits from parent if None

    @field_validator("destination")
    @classmethod
    def validate_destination(cls, v: str) -> str:
        if v in ("stderr", "stdout"):
            return v
        path = Path(v).expanduser()
        if not path.is_absolute():
            raise ValueError(f"File destination must be absolute path: {v}")
        return str(path)


class LoggingConfig(BaseModel):
    """Logging configuration.

    Env vars:
        TESTTREE__LOGGING__LEVEL: Log level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
    """

    level: LogLevel = Field(
        default="INFO",
        description="Root log level. DEBUG logs every match decision.",
    )
    outputs: list[LogOutputConfig] = Field(default_factory=lambda: [LogOutputConfig()])


class DiscoveryConfig(BaseModel):
    """Which files are test files, and which call names declare tests.

    Env vars:
        TESTTREE__DISCOVERY__INCLUDE: JSON list of include globs
        TESTTREE__DISCOVERY__EXCLUDE: JSON list of exclude globs
    """

    include: list[str] = Field(
        default_factory=lambda: ["**/*.{test,spec}.{js,jsx,mjs,cjs,ts,tsx,mts,cts}"],
        description="Globs (relative to the workspace root) selecting test files. "
        "Supports ** and {a,b} alternation.",
    )
    exclude: list[str] = Field(
        default_factory=lambda: ["**/node_modules/**", "**/dist/**", "**/.git/**"],
        description="Globs removing files from the include set.",
    )
    test_names: list[str] = Field(
        default_factory=lambda: ["it", "test"],
        description="Callee names that declare a test case.",
    )
    suite_names: list[str] = Field(
        default_factory=lambda: ["describe", "suite"],
        description="Callee names that declare a suite.",
    )

    @field_validator("include")
    @classmethod
    def validate_include(cls, v: list[str]) -> list[str]:
        if not v:
            raise ValueError("At least one include glob is required")
        return v


class MatcherConfig(BaseModel):
    """Runtime-to-static task matching.

    Env vars:
        TESTTREE__MATCHER__MIN_SIMILARITY: Fuzzy acceptance threshold (0-1)
        TESTTREE__MATCHER__TOKEN_WEIGHT: Share of token overlap in the score (0-1)
    """

    min_similarity: float = Field(
        default=0.4,
        description="Fuzzy candidates scoring below this are rejected. "
        "TRADEOFF: Lower values attach more renamed tests but risk wrong matches.",
    )
    token_weight: float = Field(
        default=0.5,
        description="Weight of token overlap vs character similarity in fuzzy scoring.",
    )

    @field_validator("min_similarity", "token_weight")
    @classmethod
    def validate_unit_interval(cls, v: float) -> float:
        if not (0.0 <= v <= 1.0):
            raise ValueError(f"Must be within [0, 1], got {v}")
        return v


class WatchConfig(BaseModel):
    """File-system watch configuration.

    Env vars:
        TESTTREE__WATCH__DEBOUNCE_MS: Change debounce window
    """

    debounce_ms: int = Field(
        default=500,
        description="Debounce window before a changed file is re-parsed.",
    )
    step_ms: int = Field(
        default=50,
        description="Polling step used by the watcher while debouncing.",
    )

    @field_validator("debounce_ms", "step_ms")
    @classmethod
    def validate_positive(cls, v: int) -> int:
        if v <= 0:
            raise ValueError(f"Must be positive, got {v}")
        return v


class TestTreeConfig(BaseModel):
    """Root configuration for testtree."""

    __test__ = False

    logging: LoggingConfig = Field(default_factory=LoggingConfig)
    discovery: DiscoveryConfig = Field(default_factory=DiscoveryConfig)
    matcher: MatcherConfig = Field(default_factory=MatcherConfig)
    watch: WatchConfig = Field(default_factory=WatchConfig)
