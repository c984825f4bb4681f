"""
Module containing various utility functions and classes.
"""
from dataclasses import dataclass, fields
from pathlib import Path
from typing import Any, Union


# Classes --------------------------------------------------------------------------------------------------------------
@dataclass
class Config:
    """
    Config parent class that can conveniently set attributes from CLI args
    """
    @classmethod
    def from_obj(cls, obj: Any) -> 'Config':
        """
        Builds the config from any object exposing matching attributes (e.g. an argparse Namespace).
        Attributes that are missing or None keep their defaults.
        """
        return cls(**{f.name: val for f in fields(cls) if (val := getattr(obj, f.name, None)) is not None})


class LiteralFile(type(Path())):
    """
    A Path wrapper that evaluates to False if the file is missing or empty.
    Inherits from the concrete Path type (PosixPath/WindowsPath) to ensure correct instantiation.
    """
    _MIN_SIZE = 1

    def __bool__(self):
        try: return self.is_file() and self.stat().st_size >= self._MIN_SIZE
        except OSError: return False


# Functions ------------------------------------------------------------------------------------------------------------
def is_stream_path(path: Union[str, Path]) -> bool:
    """Returns True if ``path`` names a standard stream rather than a file on disk."""
    return str(path) in {'-', 'stdin', 'stdout'}
