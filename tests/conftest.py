"""Shared fixtures for the encdetect test suite."""

from __future__ import annotations

from typing import Callable

import pytest
from fakes import MemoryProvider, StaticDetector, make_descriptor

from encdetect.ingestion.models import FileDescriptor


@pytest.fixture
def octet_detector() -> StaticDetector:
    return StaticDetector()


@pytest.fixture
def memory_provider() -> MemoryProvider:
    return MemoryProvider()


@pytest.fixture
def descriptor_factory() -> Callable[..., FileDescriptor]:
    return make_descriptor
