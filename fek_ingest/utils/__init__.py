"""Shared configuration, logging, pacing and file helpers."""
