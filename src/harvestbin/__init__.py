"""harvestbin: guarded external command execution."""

__version__ = "0.1.0"
