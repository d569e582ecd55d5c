"""Exceptions raised by the goal progress engine and its collaborators."""


class GoalProgressError(Exception):
    """Base class for all goal progress errors."""


class GoalDataError(GoalProgressError, ValueError):
    """A record could not be turned into trustworthy engine input."""


class ConfigurationError(GoalProgressError, ValueError):
    """Engine settings are invalid."""


class GoalStoreError(GoalProgressError):
    """Bulk retrieval of goals, accounts or snapshots failed."""
