"""Contribution schedule replay."""
