"""
Schedule Package

Normalization, classification and cache reconciliation of schedule records.
"""
