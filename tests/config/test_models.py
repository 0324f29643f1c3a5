"""Tests for config/models.py validators."""

from pathlib import Path

import pytest
from pydantic import ValidationError

from testtree.config.models import (
    DiscoveryConfig,
    LogOutputConfig,
    MatcherConfig,
    TestTreeConfig,
    WatchConfig,
)


class TestLogOutputConfig:
    def test_accepts_stream_destinations(self) -> None:
        assert LogOutputConfig(destination="stdout").destination == "stdout"

    def test_rejects_relative_file(self) -> None:
        with pytest.raises(ValidationError):
            LogOutputConfig(destination="logs/testtree.log")

    def test_accepts_absolute_file(self, tmp_path: Path) -> None:
        target = tmp_path / "t.log"
        assert LogOutputConfig(destination=str(target)).destination == str(target)


class TestDiscoveryConfig:
    def test_default_include_covers_js_family(self) -> None:
        (pattern,) = DiscoveryConfig().include
        assert "{test,spec}" in pattern
        assert "tsx" in pattern

    def test_rejects_empty_include(self) -> None:
        with pytest.raises(ValidationError):
            DiscoveryConfig(include=[])


class TestMatcherConfig:
    @pytest.mark.parametrize("value", [-0.1, 1.01])
    def test_rejects_out_of_range(self, value: float) -> None:
        with pytest.raises(ValidationError):
            MatcherConfig(min_similarity=value)


class TestWatchConfig:
    def test_rejects_non_positive_debounce(self) -> None:
        with pytest.raises(ValidationError):
            WatchConfig(debounce_ms=0)


class TestRootConfig:
    def test_sections_have_defaults(self) -> None:
        config = TestTreeConfig()
        assert config.matcher.token_weight == 0.5
        assert config.watch.step_ms == 50
