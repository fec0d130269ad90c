"""
Test suite for the custodial treasury

Contains:
- tests/unit/          : Unit tests for individual modules and scenarios
"""
