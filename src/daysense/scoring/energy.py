"""Energy level to energy state mapping."""

from enum import Enum


class EnergyState(str, Enum):
    RECHARGE = "recharge"
    FLOW = "flow"
    FOCUS = "focus"


ENERGY_STATE_LABELS: dict[EnergyState, str] = {
    EnergyState.RECHARGE: "Recharge Mode",
    EnergyState.FLOW: "Flow State",
    EnergyState.FOCUS: "Deep Focus",
}

ENERGY_STATE_DESCRIPTIONS: dict[EnergyState, str] = {
    EnergyState.RECHARGE: "Take it easy. Focus on low-energy tasks and self-care.",
    EnergyState.FLOW: "Balanced energy. Perfect for varied tasks and collaboration.",
    EnergyState.FOCUS: "Peak performance. Tackle your most demanding work.",
}

# Labels used by the remote inference backend
BACKEND_STATE_NAMES: dict[EnergyState, str] = {
    EnergyState.RECHARGE: "RECHARGE",
    EnergyState.FLOW: "FLOW",
    EnergyState.FOCUS: "FOCUSED",
}


def get_energy_state(level: int) -> EnergyState:
    """Map a 1-5 energy level to its coarse state."""
    if level <= 2:
        return EnergyState.RECHARGE
    if level == 3:
        return EnergyState.FLOW
    return EnergyState.FOCUS


def energy_level_to_percentage(level: int) -> int:
    """Convert a 1-5 level to the 20-100 scale the backend expects."""
    return min(100, max(20, level * 20))


def backend_state_name(level: int) -> str:
    return BACKEND_STATE_NAMES[get_energy_state(level)]
