"""
Bloom - multi-instance WhatsApp bot coordination

Several bot identities connect at once; exactly one is active and the
active role rotates between them on a timer.
"""

__version__ = "1.0.0"
