"""AlphaSignal: contradiction alerts for tracked social-media accounts."""

__version__ = "0.3.0"
