"""
Test Data Factories

Builders for rosters, rooms and tale sets used across the unit and
integration tests.
"""
