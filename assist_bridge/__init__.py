"""Correlate voice-agent questions with operator answers sent through Slack."""

__version__ = "0.1.0"
