"""Test data factories using factory_boy.

These factories generate test data for TokenWatch models.
"""

from tests.factories.token import (
    CandidateTokenFactory,
    FakeHolderProvider,
    FakeMetricProvider,
    RecordingSink,
    healthy_raw_fields,
)

__all__ = [
    "CandidateTokenFactory",
    "FakeHolderProvider",
    "FakeMetricProvider",
    "RecordingSink",
    "healthy_raw_fields",
]
