"""Shared fixtures and Firestore mock helpers for the test suite."""

from tests.mock_utils import (  # noqa: F401
    FailingBatch,
    MockArrayRemove,
    MockArrayUnion,
    MockBatch,
    make_mock_db,
    patch_mockfirestore,
)
