"""Exceptions raised when building hazard models and running calculations"""


class HazardError(Exception):
    """Base class for all errors raised by this package"""


class ConfigurationError(HazardError, ValueError):
    """
    Raised for invalid model or calculation configuration,
    e.g. an incomplete source set builder or out of range coordinates.

    Always raised synchronously while building the model,
    never during a running calculation.
    """


class CalculationError(HazardError, RuntimeError):
    """Raised when a stage of a hazard calculation fails"""


class GroundMotionError(CalculationError):
    """Raised when a ground motion model fails or returns invalid results"""


class UnsupportedCalculationError(CalculationError, NotImplementedError):
    """Raised when a calculation stage is not available for a source set type"""
