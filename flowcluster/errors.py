"""
Exceptions raised while building cluster trees.

Construction either succeeds with a complete tree or raises one of these;
a partially built tree is never returned. Lookup misses are not errors and
are reported as ``None`` by the tree accessors.
"""


class FlowClusterError(Exception):
    """Base class for all flowcluster errors."""


class ConfigurationError(FlowClusterError, ValueError):
    """Invalid options, or a hierarchy without usable zoom levels."""


class IntegrityError(FlowClusterError):
    """A cluster hierarchy references clusters without recorded children."""
