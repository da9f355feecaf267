"""
Tour Optimizer Module.

This module turns a driver's scanned packages into an ordered delivery tour
using priority-tiered nearest-neighbor construction and 2-opt improvement,
and keeps that tour up to date as stops are added, completed or failed.
"""

__version__ = '0.1.0'
