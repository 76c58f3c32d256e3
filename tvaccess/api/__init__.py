"""
HTTP API blueprints.
"""
