"""Self-triage estimation core: rPPG heart rate, cross-modal trust, urgency."""

__all__ = [
    "adapter",
    "analyzer",
    "bpm",
    "buffer",
    "config",
    "consolidation",
    "correlation",
    "modality",
    "preprocess",
    "quality",
    "roi",
    "service",
    "session",
    "urgency",
]

__version__ = "0.1.0"
