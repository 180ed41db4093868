"""Runs -- recorded generation runs replayed from JSON files."""

from artifactor.lib.runs.loader import load_run_file, run_from_file
from artifactor.lib.runs.models import OutputSpec, PrimaryOutputSpec, RunFile

__all__ = ["load_run_file", "run_from_file", "OutputSpec", "PrimaryOutputSpec", "RunFile"]
