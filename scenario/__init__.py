"""Recorded action model and ingestion into typed replay plans."""

from . import models, payloads, registry, values
from .registry import ReplayPlan, ReplayStep

__all__ = ["models", "payloads", "registry", "values", "ReplayPlan", "ReplayStep"]
