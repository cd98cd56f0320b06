"""
Macro variable storage shared by both channels.
Handles numbered variables (#1, #100, ...) written by `#n = value` lines.
"""
import logging
from typing import Dict, Optional

logger = logging.getLogger(__name__)


class VariableStore:
    """Maps positive variable indices to float values. Last writer wins."""

    def __init__(self):
        self.numbered_parameters: Dict[int, float] = {}

    def set_numbered_parameter(self, number: int, value: float) -> bool:
        """Set a numbered variable. Non-positive indices are rejected."""
        if number < 1:
            logger.debug("Ignoring write to invalid variable #%s", number)
            return False
        self.numbered_parameters[number] = float(value)
        return True

    def get_numbered_parameter(self, number: int, default: Optional[float] = None) -> Optional[float]:
        """Get a numbered variable value."""
        return self.numbered_parameters.get(number, default)

    def __contains__(self, number: int) -> bool:
        return number in self.numbered_parameters

    def __len__(self) -> int:
        return len(self.numbered_parameters)

    def clear(self):
        """Clear all variables."""
        self.numbered_parameters.clear()

    def get_all_variables(self) -> Dict[str, float]:
        """Variables keyed as '#<index>', ordered by index, for display."""
        return {f"#{num}": self.numbered_parameters[num]
                for num in sorted(self.numbered_parameters)}
