"""Submission engine — aggregate resolved dependencies and submit a snapshot."""

from actiondeps.engines.submission.aggregator import SubmissionEntry, aggregate, to_package_url
from actiondeps.engines.submission.submitter import build_snapshot, submit_dependencies

__all__ = [
    "SubmissionEntry",
    "aggregate",
    "build_snapshot",
    "submit_dependencies",
    "to_package_url",
]
