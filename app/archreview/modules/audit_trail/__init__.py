"""
Audit trail: per-system linked list of every document that became current, newest first.
"""
