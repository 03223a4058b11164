"""FFmpeg build orchestrator.

Drives codec library builds, FFmpeg configure feature negotiation,
staging and packaging of portable FFmpeg distributions.
"""

__version__ = "0.1.0"
