"""Tests for pipeline outcomes and the deploy guard."""

import pytest

from shipline.core.outcome import Failure, Success, should_deploy


@pytest.mark.parametrize("previous", [None, "SUCCESS"])
def test_deploy_allowed(previous):
    assert should_deploy(previous) is True


@pytest.mark.parametrize("previous", ["FAILURE", "UNSTABLE", "ABORTED", ""])
def test_deploy_blocked(previous):
    assert should_deploy(previous) is False


def test_outcome_results():
    assert Success().result == "SUCCESS"
    assert Failure(stage="test").result == "FAILURE"


@pytest.mark.parametrize("failure, message", [
    (Failure(stage="test", reason="exit code 1"),
     "Stage 'test' failed: exit code 1"),
    (Failure(stage="lint"), "Stage 'lint' failed"),
    (Failure(reason="Deploy host unreachable"), "Deploy host unreachable"),
    (Failure(), "Build failed"),
])
def test_failure_describe(failure, message):
    assert failure.describe() == message
