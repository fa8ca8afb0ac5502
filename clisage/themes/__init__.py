"""
Clisage CLI Builder

Copyright (c) 2025 rtj.dev LLC.
Licensed under the MIT License. See LICENSE file for details.
"""

from .colors import ColorsMeta, OneColors, get_app_style, get_one_theme

__all__ = [
    "OneColors",
    "ColorsMeta",
    "get_one_theme",
    "get_app_style",
]
