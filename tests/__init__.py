"""Test suite for the storefront package."""
