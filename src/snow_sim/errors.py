"""Exceptions raised by the snow crystal simulator."""


class SnowSimError(Exception):
    """Base class for all simulator errors."""


class ParameterError(SnowSimError, ValueError):
    """Unknown parameter name or a value outside its valid range."""


class LifecycleError(SnowSimError, RuntimeError):
    """Command issued in a controller state that does not accept it."""


class ExecutionError(SnowSimError, RuntimeError):
    """A worker could not finish its partition of a tick."""
