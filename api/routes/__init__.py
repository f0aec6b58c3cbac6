"""
Route modules: one per maintenance window plus health.
"""
