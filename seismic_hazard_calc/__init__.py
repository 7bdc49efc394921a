"""
Functionality for computing probabilistic seismic hazard curves
from logic-tree weighted source sets.

Modules:
- calc: The hazard calculation pipeline.
- config: Calculation configuration.
- curves: Hazard curve helpers and aggregation.
- errors: Exceptions.
- geo: Locations and distances.
- gmm: Interface to ground motion models.
- hazard: Functions for computing seismic hazard.
- results: Hazard calculation results.
- site: Sites of interest.
- source_sets: Source sets and hazard models.
- sources: Seismic sources and ruptures.
- stages: The calculation stages of a source set.
- tasks: Composition of tasks running on an executor.
- utils: Utility functions.
"""

from . import (
    calc,
    config,
    curves,
    errors,
    geo,
    gmm,
    hazard,
    results,
    site,
    source_sets,
    sources,
    stages,
    tasks,
    utils,
)

__all__ = [
    "calc",
    "config",
    "curves",
    "errors",
    "geo",
    "gmm",
    "hazard",
    "results",
    "site",
    "source_sets",
    "sources",
    "stages",
    "tasks",
    "utils",
]
