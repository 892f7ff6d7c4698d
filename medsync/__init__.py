"""Medication reconciliation between the app and an external health store.

This package contains the business logic and domain models,
isolated from the health store itself for easy testing and reasoning.
"""
