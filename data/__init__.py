# PATH: data/__init__.py
"""
Data directory package.

This directory contains runtime-generated data:
- opportunities.db: SQLite store of direct and triangular opportunity records
"""
