"""
Speech-to-chatbox translator for VRChat.
"""

__version__ = "0.1.0"
