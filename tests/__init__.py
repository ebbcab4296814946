"""Tests for mepris."""
