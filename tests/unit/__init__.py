"""Unit tests for the core substrate: errors and structured logging."""
