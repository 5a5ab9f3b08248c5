"""Filters and aggregates over the joined package table."""
