"""
brmacro_pipeline.sources — data source adapters.

Each source wraps one external data provider:
  SGSSource       — BCB SGS time series (Selic, trade balance)
  IpeadataSource  — Ipeadata OData (IPCA, IGP-M)
  IBGESource      — IBGE aggregates API (GDP, unemployment)
  PTAXSource      — BCB Olinda PTAX (USD/BRL)
"""

from brmacro_shared.constants import IndicatorKind
from brmacro_pipeline.sources.base import BaseSource
from brmacro_pipeline.sources.bcb_sgs import SGSSource
from brmacro_pipeline.sources.ibge import IBGESource
from brmacro_pipeline.sources.ipeadata import IpeadataSource
from brmacro_pipeline.sources.ptax import PTAXSource

SOURCE_CLASSES: tuple[type[BaseSource], ...] = (
    SGSSource,
    IpeadataSource,
    IBGESource,
    PTAXSource,
)

# Indicator → adapter class that serves it
SOURCE_FOR_INDICATOR: dict[IndicatorKind, type[BaseSource]] = {
    kind: cls for cls in SOURCE_CLASSES for kind in cls.indicators
}

__all__ = [
    "BaseSource",
    "SGSSource",
    "IpeadataSource",
    "IBGESource",
    "PTAXSource",
    "SOURCE_CLASSES",
    "SOURCE_FOR_INDICATOR",
]
