"""Tests for the Nuki Bridge integration."""
