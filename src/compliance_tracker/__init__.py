"""Policy lifecycle and employee acknowledgement compliance tracker."""

__version__ = "0.1.0"
