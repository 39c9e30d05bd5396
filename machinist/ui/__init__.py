"""UI layer for machinist."""
