"""Tests for the Overnight EV Charger integration."""
