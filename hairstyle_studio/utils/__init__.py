"""Leaf utilities: image codec and model-text cleanup."""

from . import image_codec
from .text_cleaner import clean_description, parse_json_list

__all__ = [
    "image_codec",
    "clean_description",
    "parse_json_list",
]
