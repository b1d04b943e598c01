"""Strategy layer: transfer recommendations over a forecast window.

Re-exports the main functions for convenience::

    from fplsquad.strategy import recommend_transfers
"""

from fplsquad.strategy.recommendations import (
    flat_forecast,
    pool_frame,
    recommend_transfers,
)

__all__ = [
    "recommend_transfers",
    "flat_forecast",
    "pool_frame",
]
