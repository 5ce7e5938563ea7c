"""
Repository for analysis record data access.

This module re-exports the shared repository for use in the API service.
"""

from __future__ import annotations

from shared.repository import AnalysisRepository

__all__ = ["AnalysisRepository"]
