"""Tests for the scoring_engine package."""
