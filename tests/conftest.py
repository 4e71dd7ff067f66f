"""Shared fixtures: in-memory stores with a controllable clock."""

import pytest

from .fakes import FakeBlobStore, FakeDocumentStore
from .helpers import Clock


@pytest.fixture
def clock():
    return Clock()


@pytest.fixture
def docs(clock):
    return FakeDocumentStore(clock)


@pytest.fixture
def blobs():
    return FakeBlobStore()
