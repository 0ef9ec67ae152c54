"""
Finance Tracker - Core Package

Transaction categorization and correction learning for a personal
finance tracker.

DESIGN PRINCIPLES:
1. AI suggests, the user corrects, the system learns
2. Classification never blocks or fails a create
3. State is an immutable snapshot, managers return the next one
4. Every state change is auditable
5. Storage layer is swappable
"""

__version__ = "1.0.0"
__author__ = "Finance Tracker Team"
