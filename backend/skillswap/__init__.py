"""SkillSwap session booking and scheduling-conflict engine."""

__version__ = "0.1.0"
