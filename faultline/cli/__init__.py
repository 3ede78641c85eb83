"""
Faultline CLI.

Usage:
    faultline run script.py [ARGS]...
    faultline validate --config faultline.yaml
    faultline codes --config faultline.yaml
"""

from faultline import __version__

__cli_name__ = "faultline"
