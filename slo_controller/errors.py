"""Exceptions raised by the SLO controller."""


class SloControllerError(Exception):
    """Base class for all controller errors."""


class ConfigError(SloControllerError):
    """A colocation configuration document could not be parsed or is invalid."""


class SelectorError(SloControllerError):
    """A label selector could not be compiled into a matcher."""


class MergeError(SloControllerError):
    """A strategy could not be copied or merged."""
