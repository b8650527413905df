"""
Montage Maker - builds short montage videos from randomized clips of source videos.
"""

__version__ = "1.0.0"
