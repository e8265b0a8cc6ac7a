"""
Family Ledger - Source Package

An in-memory ledger of family accounts and reward tasks:
completing an assigned task credits its points to the assignee,
and the leaderboard ranks accounts by their balance.

DESIGN PRINCIPLES:
1. The store is the only mutator of ids, balances and task state
2. Fail early, fail visibly: every operation succeeds fully or changes nothing
3. Every mutation and rejection is auditable
4. Hosting layers (UI, HTTP, persistence) stay outside the core
"""

__version__ = "1.0.0"
__author__ = "Family Ledger Team"
