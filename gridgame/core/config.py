"""
GridGame Configuration
Contains game constants, file paths, and data loaders.
"""
import json
from pathlib import Path

# Paths
PACKAGE_ROOT = Path(__file__).parent.parent
DATA_DIR = PACKAGE_ROOT / "data"

# Players
PLAYER_ONE = 1
PLAYER_TWO = 2
PLAYER_IDS = (PLAYER_ONE, PLAYER_TWO)

# Board
GRID_SIZE = 25
STARTING_ENERGY = 100

# Game status values
STATUS_READY = "ready"
STATUS_PLAYING = "playing"
STATUS_PAUSED = "paused"
STATUS_ENDED = "ended"

# Turn phases, in order
PHASE_RESOURCE = "resource"
PHASE_ACTION = "action"
PHASE_BUILD = "build"
PHASES = (PHASE_RESOURCE, PHASE_ACTION, PHASE_BUILD)

# Turn configuration
MAX_PLAYER_ACTIONS = 3
TURN_TIME_LIMIT = 120  # seconds
TIMER_TICK = 1.0  # seconds between turnTimerTick events
AUTO_END_TURN = True
ACTION_PHASE_AUTO_ADVANCE_DELAY = 0.5  # seconds after the last player action
BASE_ENERGY_INCOME = 10
RESOURCE_BONUS_RANGE = 2  # Manhattan distance from worker to node
RESOURCE_BONUS_DIVISOR = 10

# Base configuration
BASE_HEALTH = 200
PLACEMENT_RADIUS = 3
MAX_PLACEMENT_RADIUS = 5

# Combat configuration
ATTACK_RANGE = 1  # Chebyshev distance, diagonals included
DAMAGE_VALUES = {
    "worker": 1,
    "scout": 1,
    "infantry": 2,
    "heavy": 3,
}
DEFAULT_DAMAGE = 1

# Resource configuration
RESOURCE_NODE_VALUE = 100
RESOURCE_REGENERATION_RATE = 5
GATHER_AMOUNT = 5
GATHER_RANGE = 1  # Chebyshev distance, diagonals included

# Victory configuration
RESOURCE_VICTORY_THRESHOLD = 500
ELIMINATION_MIN_TURN = 5  # elimination only counts once turn_number exceeds this

# Save files
SAVE_VERSION = "1.0.0"


def load_unit_stats() -> dict:
    """Load unit stats from units.json"""
    with open(DATA_DIR / "units.json", "r") as f:
        return json.load(f)


def load_scenario() -> dict:
    """Load scenario configuration"""
    with open(DATA_DIR / "scenario.json", "r") as f:
        return json.load(f)


# Pre-load stats for convenience (used by entities.py)
UNIT_STATS = load_unit_stats()
SCENARIO = load_scenario()
