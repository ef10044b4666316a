"""Shared test doubles."""

from unittest.mock import MagicMock


class FakeClock:
    """Manually advanced monotonic clock."""

    def __init__(self, start: float = 1000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


def mock_supabase(execute_results=None):
    """Supabase mock with chained query builder.

    Args:
        execute_results: Optional list of return values for successive
            .execute() calls (uses side_effect). When not provided,
            every .execute() returns ``MagicMock(data=[])``.
    """
    sb = MagicMock()
    chain = MagicMock()
    if execute_results is not None:
        chain.execute.side_effect = execute_results
    else:
        chain.execute.return_value = MagicMock(data=[])
    for method in (
        "select",
        "insert",
        "update",
        "delete",
        "eq",
        "order",
        "limit",
        "single",
        "maybe_single",
    ):
        getattr(chain, method).return_value = chain
    sb.table.return_value = chain
    return sb
