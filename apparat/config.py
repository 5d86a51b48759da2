"""
Balance configuration.

Every tunable number the subsystems use lives here, grouped by the
subsystem that reads it. Defaults are the shipped balance; an optional
JSON file overrides any subset of them.

Usage:
    config = load_config("saves")          # defaults + saves/.apparat_balance.json
    config.career.min_turns_in_position    # 6
"""

from __future__ import annotations

import json
import logging
from pathlib import Path

from pydantic import BaseModel, Field, ValidationError

logger = logging.getLogger(__name__)

CONFIG_FILENAME = ".apparat_balance.json"


class CareerConfig(BaseModel):
    """Promotion ladder, offers and track commitment."""
    max_position: int = 8
    branch_index: int = 2          # First rank that belongs to a track
    top_rank_index: int = 7        # Ranks from here up transcend track
    min_turns_in_position: int = 6
    # Standing required to hold each rank, indexed by target rank
    required_standing: list[int] = Field(
        default_factory=lambda: [0, 20, 30, 40, 50, 55, 60, 70, 80]
    )
    # Patron favor required for senior ranks only
    required_patron_favor: dict[int, int] = Field(
        default_factory=lambda: {5: 40, 6: 50, 7: 60, 8: 70}
    )
    rival_threat_ceiling: int = 80

    offer_lifetime: int = 4
    decline_cooldown: int = 4
    accept_standing: int = 5
    accept_patron_favor: int = 10
    accept_rival_threat: int = 10
    decline_patron_favor: int = -15
    expiry_patron_favor: int = -10
    promotion_affinity: int = 10

    # Offer type selection
    merit_affinity: int = 30
    patronage_favor: int = 70
    emergency_stability: int = 30

    # Track commitment
    emerging_affinity: int = 15
    emerging_lead: int = 10
    dominant_affinity: int = 25
    commit_turns: int = 6
    holding_affinity_per_turn: int = 1
    transfer_standing_cost: int = 10

    # Failure states
    demotion_standing: int = 10
    removal_standing: int = 5
    removal_patron_favor: int = 10

    succession_delay: int = 3


class AgentConfig(BaseModel):
    """NPC needs, goals, memories and autonomous actions."""
    memory_capacity: int = 8
    goal_capacity: int = 4
    salience_decay: int = 10
    reinforcement: int = 25

    action_chance: float = 0.15
    action_chance_cap: float = 0.6
    frustration_per_turn: int = 5

    disposition_decay: int = 1
    neglect_turns: int = 3
    relationship_decay: int = 1

    patron_favor_decay: int = 2
    patron_favor_floor: int = 30
    rival_pressure_min: int = 1
    rival_pressure_max: int = 3

    fate_min_turn: int = 5
    rival_defeat_threat: int = 20
    rival_defeat_chance: float = 0.05
    purge_disposition: int = 30
    purge_stability: int = 40
    purge_chance: float = 0.03
    natural_exit_chance: float = 0.01


class DriftConfig(BaseModel):
    """Metric drift, ambient events and the three world subsystems."""
    min_drift_magnitude: float = 1.0

    ambient_treasury_chance: float = 0.10
    ambient_treasury_delta: int = 5
    ambient_abroad_chance: float = 0.10
    ambient_abroad_delta: int = 3

    faction_dominant: int = 80
    faction_collapsing: int = 15
    faction_hostile: int = 20

    tension_crisis: int = 80
    hostile_relationship: int = -60
    unstable_tension_rise: int = 2
    unstable_threshold: int = 40

    secession_crisis: int = 50
    unrest_instability: int = 40
    crisis_instability: int = 60
    rebellion_instability: int = 80


class EconomyConfig(BaseModel):
    """Treasury, output and food."""
    fiscal_crisis: int = 15
    food_shortage: int = 20
    inflation_spike: int = 15
    trade_treaty_treasury: int = 2
    expenditure: float = 1.0


class DecisionConfig(BaseModel):
    """Limits on content-supplied decisions."""
    decisions_per_turn: int = 2
    national_effect_cap: int = 15
    personal_effect_cap: int = 12
    # Changing a law
    law_backlash_delay: int = 3
    law_standing_shift: int = 5


class BalanceConfig(BaseModel):
    """Complete balance configuration."""
    career: CareerConfig = Field(default_factory=CareerConfig)
    agents: AgentConfig = Field(default_factory=AgentConfig)
    drift: DriftConfig = Field(default_factory=DriftConfig)
    economy: EconomyConfig = Field(default_factory=EconomyConfig)
    decisions: DecisionConfig = Field(default_factory=DecisionConfig)
    event_log_limit: int = 200


def get_config_path(saves_dir: Path | str = "saves") -> Path:
    """Get path to the balance override file."""
    return Path(saves_dir) / CONFIG_FILENAME


def load_config(saves_dir: Path | str = "saves") -> BalanceConfig:
    """Load balance overrides from file, or return defaults if not found."""
    path = get_config_path(saves_dir)

    if not path.exists():
        return BalanceConfig()

    try:
        with open(path, "r", encoding="utf-8") as f:
            saved = json.load(f)
        # Missing keys fall back to model defaults
        return BalanceConfig.model_validate(saved)
    except (json.JSONDecodeError, OSError, ValidationError) as e:
        logger.warning(f"Ignoring unreadable balance file {path}: {e}")
        return BalanceConfig()


def save_config(config: BalanceConfig, saves_dir: Path | str = "saves") -> bool:
    """Save balance config to file. Returns True on success."""
    path = get_config_path(saves_dir)
    path.parent.mkdir(parents=True, exist_ok=True)

    try:
        path.write_text(config.model_dump_json(indent=2), encoding="utf-8")
        return True
    except OSError as e:
        logger.error(f"Could not write balance file {path}: {e}")
        return False
