"""PowerLog - household battery inventory tracker."""

__version__ = "0.1.0"
