"""Expressions of interest between teams, companies and opportunities."""
