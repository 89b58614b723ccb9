class PlannerError(Exception):
    pass


class ConfigurationError(PlannerError, ValueError):
    """Malformed planner input or invalid option (cable counts, bounds, keys)."""


class InvalidRowError(PlannerError, ValueError):
    """Row identifier outside the Fx..Tz enumeration."""
