"""Listening Lab

Terminal companion for a Roon system: search and play tracks, control
playback, and ask an OpenAI-backed audio coach for critical-listening
suggestions that can be played by number.
"""

__version__ = "0.1.0"
