"""Tests for the data_products package."""
