"""
Record stores for tasks.

Stores return ``Outcome`` values for every operation; domain failures such
as a missing record are failure outcomes, not exceptions.
"""
