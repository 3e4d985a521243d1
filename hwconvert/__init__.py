"""
hwconvert - hardware-accelerated video/audio conversion on top of FFmpeg.
"""

__version__ = "1.2.0"
