from . import (
    canon,
    exceptions,
    types,
    records,
    config,
    utils,
    ingest,
    resample,
    profiles,
    aggregate,
    envelope,
    transform,
    tou,
    irradiance,
    scenario,
    summary,
    pipeline,
    cache,
)

__all__ = [
    "canon",
    "exceptions",
    "types",
    "records",
    "config",
    "utils",
    "ingest",
    "resample",
    "profiles",
    "aggregate",
    "envelope",
    "transform",
    "tou",
    "irradiance",
    "scenario",
    "summary",
    "pipeline",
    "cache",
]
