"""
Tests for the command-line status view.
"""

from rich.console import Console

from apparat import __main__ as cli
from apparat.config import BalanceConfig


def render_status(monkeypatch, world, config):
    recorder = Console(record=True, width=120)
    monkeypatch.setattr(cli, "console", recorder)
    cli.show_status(world, config)
    return recorder.export_text()


class TestShowStatus:
    """Test that status reflects the loaded balance config."""

    def test_default_config_eligible(self, monkeypatch, scenario_a, config):
        assert "Eligible for economic:4" in render_status(monkeypatch, scenario_a, config)

    def test_override_flows_into_eligibility(self, monkeypatch, scenario_a):
        config = BalanceConfig()
        config.career.min_turns_in_position = 10

        text = render_status(monkeypatch, scenario_a, config)

        assert "Not eligible: insufficient_tenure" in text
