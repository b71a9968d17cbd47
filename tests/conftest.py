"""Pytest configuration and shared fixtures."""

import sys
from pathlib import Path

import pytest

# Project root on sys.path so api/, lsp/, scheduling/, editor/ and infra/ import
PROJECT_ROOT = Path(__file__).parent.parent
sys.path.insert(0, str(PROJECT_ROOT))


@pytest.fixture
def fanuc_program() -> str:
    """A minimal FANUC TP program in .ls form."""
    return "/PROG TEST\n/MN\n1: J P[1] 100% FINE;\n/END\n"
