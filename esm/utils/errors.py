# -----------
# Exceptions
# -----------
class SchemaError(ValueError):
    """An instance document is malformed or misses an expected field or column."""


class DimensionError(ValueError):
    """An array extent or index reference is inconsistent with its index set."""


class SolutionNotAvailableError(RuntimeError):
    """Results were requested from a model without an optimal solution."""
