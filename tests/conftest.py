"""Shared fixtures for the combinator and calculator tests."""
import pytest

from calculator import Calculator


@pytest.fixture
def calc():
    """A fresh calculator, so lazy rules start unbuilt in every test."""
    return Calculator()
