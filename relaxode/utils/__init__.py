"""Shared helpers: registries, iteration logging and file input/output."""

from .io import read_yaml_file, write_yaml_file
from .logging import IterationLogger
from .registry import Registry

__all__ = ["IterationLogger", "Registry", "read_yaml_file", "write_yaml_file"]
