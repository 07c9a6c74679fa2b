"""
CLI module for feature extraction and example store maintenance.

Provides command-line tools for inspecting features and managing a user's examples.
"""

from eml_voice.cli.voice import main as voice_main

__all__ = ["voice_main"]
