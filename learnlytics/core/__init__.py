"""
Learnlytics Core Module

Configuration, database wiring, errors, and concurrency helpers.
"""
