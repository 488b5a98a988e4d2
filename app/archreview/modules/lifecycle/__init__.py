"""
Lifecycle transitions (POST /api/v1/lifecycle/transition) and the trail/operations read views.
"""
