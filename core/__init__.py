"""Core domain logic for personal health triage.

This package contains the scoring rules and domain models,
isolated from storage and delivery for easy testing and reasoning.
"""
