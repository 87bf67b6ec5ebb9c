"""
Backend Scripts Module

Utility scripts for database setup and maintenance.

Available scripts:
    - seed_rules.py: Creates indexes and the default approval rules

Usage:
    python -m scripts.seed_rules
"""
