"""Qt runtime of the tabular data-source engine."""
