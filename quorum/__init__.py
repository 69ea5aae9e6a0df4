"""Quorum - meeting records synchronized with canonical decisions and actions."""
