"""Diagnostics for first-stage policy models."""

from .auc import compute_auc

__all__ = ["compute_auc"]
