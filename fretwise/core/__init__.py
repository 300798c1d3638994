"""Core components for the fretwise scoring pipeline."""

# Import interfaces for easier access
from .interfaces import (
    AudioAnalyzer,
    IAudioInput,
)
from .capabilities import AnalyzerTier, detect_capabilities, select_tier

__all__ = [
    "AudioAnalyzer",
    "IAudioInput",
    "AnalyzerTier",
    "detect_capabilities",
    "select_tier",
]
