"""
Tests for formatting helpers and environment configuration.
"""

import pytest
from pathlib import Path
import sys

# Add project root to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from utils import Config, format_currency, format_miles, format_percent


class TestFormatting:

    @pytest.mark.parametrize("amount,expected", [
        (315000, "$315,000"),
        (1234.5, "$1,235"),
        (-4500, "-$4,500"),
        (0, "$0"),
        (None, "n/a"),
    ])
    def test_currency(self, amount, expected):
        assert format_currency(amount) == expected

    def test_other_currency(self):
        assert format_currency(1000, "GBP") == "£1,000"
        assert format_currency(1000, "CAD") == "CAD 1,000"

    def test_percent(self):
        assert format_percent(12.345) == "12.3%"
        assert format_percent(5, decimals=0) == "5%"

    def test_miles(self):
        assert format_miles(0.45) == "0.45 mi"
        assert format_miles(None) == "n/a"


class TestConfig:

    def test_defaults(self, monkeypatch):
        for name in ("PORT", "LOG_LEVEL", "DATA_DIR", "ANALYSIS_STORE_PATH", "DEFAULT_MAO_RULE"):
            monkeypatch.delenv(name, raising=False)
        config = Config.load()

        assert config.port == 8000
        assert config.log_level == "INFO"
        assert config.default_mao_rule == "70%"
        assert Path(config.analysis_store) == Path("./data") / "analyses.json"

    def test_environment_overrides(self, monkeypatch, tmp_path):
        monkeypatch.setenv("LOG_LEVEL", "debug")
        monkeypatch.setenv("ANALYSIS_STORE_PATH", str(tmp_path / "store.json"))
        monkeypatch.setenv("DEFAULT_MAO_RULE", "65%")
        config = Config.load()

        assert config.log_level == "DEBUG"
        assert config.analysis_store == str(tmp_path / "store.json")
        assert config.to_dict()["default_mao_rule"] == "65%"
