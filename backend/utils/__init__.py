"""
Utils Package

Provides utility modules for:
- error_responses: Structured JSON bodies for engine and validation errors
"""
