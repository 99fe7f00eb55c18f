"""Preparation utilities for the cleaned spell table.

Provides functions to derive analysis variables (gender flag, education
level, log outcomes) from the cleaned table and to validate its rows into
`SpellRecord` objects before aggregation.
"""
