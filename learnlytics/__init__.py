"""
Learnlytics - learning-records telemetry and analytics backend.
"""

__version__ = "0.1.0"
