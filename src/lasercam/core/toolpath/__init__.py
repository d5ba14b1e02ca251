"""Toolpath generation package."""

from .base import MotionRequest, MoveType, ScanPlan, ScanRow, ScanStats

__all__ = ["MotionRequest", "MoveType", "ScanPlan", "ScanRow", "ScanStats"]
