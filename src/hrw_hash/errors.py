"""Exception types raised by the ranking engine."""


class HrwError(Exception):
    """Base class for all hrw_hash errors."""


class ContractViolation(HrwError):
    """A caller broke a documented precondition (e.g. invalid capacity).

    This is a programming error, not a recoverable runtime condition.
    """


class UnsupportedValueError(HrwError, TypeError):
    """Value has no stable byte encoding and cannot be digested."""


class ConfigError(HrwError, ValueError):
    """Invalid configuration."""
