"""
SailNav
=======

Dead-reckoning navigation and sailing performance engine.

Components:
- navigation: geodesy, route model, route tracking
- sensors: GPS fix smoothing
- performance: polar and wind model
- main: SailNav context and replay CLI
"""

__version__ = "0.1.0"
