"""Daily compass and wins views materialized from interactions."""

from journal_pipeline.views.builders import CompassViewBuilder, ViewBuilder, WinsViewBuilder
from journal_pipeline.views.hook import InlineViewUpdateHook
from journal_pipeline.views.materializer import ViewMaterializer
from journal_pipeline.views.repository import ViewRepository
from journal_pipeline.views.rules import COMPASS_RULES, CompassRule, classify, local_date_string
from journal_pipeline.views.schemas import CompassView, ViewUpdate, WinsView

__all__ = [
    "COMPASS_RULES",
    "CompassRule",
    "CompassView",
    "CompassViewBuilder",
    "InlineViewUpdateHook",
    "ViewBuilder",
    "ViewMaterializer",
    "ViewRepository",
    "ViewUpdate",
    "WinsView",
    "WinsViewBuilder",
    "classify",
    "local_date_string",
]
