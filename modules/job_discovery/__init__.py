# Package surface: the lib namespace plus the run() entry point.
from . import lib
from .main import run

__all__ = ["lib", "run"]
