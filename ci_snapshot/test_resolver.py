"""
Pytest tests for ci_snapshot/resolver.py.

Run from the repository root:
    pytest ci_snapshot/test_resolver.py -v
"""

import pytest

from ci_snapshot.config import CircleCIConfig
from ci_snapshot.exceptions import BuildNotFound
from ci_snapshot.resolver import (
    ApprovalTarget,
    BrowseTarget,
    LineKey,
    filter_name_from_line,
    is_pending_approval_line,
    resolve_key,
    resolve_line,
)
from ci_snapshot.types import JobRecord, WorkflowRecord

CFG = CircleCIConfig(token="tok", organization="acme", repo_name="widgets")


def _wf(wid, name, jobs, *, number=57, status="success"):
    return WorkflowRecord(
        workflow_id=wid,
        workflow_name=name,
        workflow_status=status,
        pipeline_number=number,
        branch="main",
        jobs=jobs,
    )


BUILD = _wf("w1", "build", [JobRecord(name="build-x", status="success", job_number=42)])
APPROVE = _wf(
    "w2",
    "approve",
    [JobRecord(name="deploy-approval", status="on_hold", approval_request_id="a1")],
    status="on_hold",
)


# ============================================================================
# Filter-name derivation
# ============================================================================

@pytest.mark.parametrize(
    "line,expected",
    [
        ("42 - build-x", "build-x"),
        ("hold - Wait for approve", "hold"),
        ("approve - Wait for approve", "approve"),
        ("- - queued-job", "queued-job"),
        ("build (success)", None),
        ("", None),
    ],
)
def test_filter_name_from_line(line, expected):
    assert filter_name_from_line(line) == expected


def test_pending_approval_marker_is_case_insensitive():
    assert is_pending_approval_line("hold - Wait for approve")
    assert is_pending_approval_line("hold - WAIT FOR approve")
    assert not is_pending_approval_line("42 - build-x")


# ============================================================================
# resolve_line
# ============================================================================

def test_job_line_resolves_to_browse_url():
    res = resolve_line(CFG, [BUILD, APPROVE], "42 - build-x")
    assert isinstance(res.target, BrowseTarget)
    assert res.target.url == "https://app.circleci.com/pipelines/gh/acme/widgets/57/workflows/w1/jobs/42"
    assert res.workflow is BUILD
    assert res.job.name == "build-x"


def test_approval_line_by_job_name():
    wf = _wf("w9", "deploy", [JobRecord(name="hold", status="on_hold", approval_request_id="req-7")])
    res = resolve_line(CFG, [BUILD, wf], "hold - Wait for approve")
    assert res.target == ApprovalTarget(workflow_id="w9", approval_request_id="req-7")
    assert res.target.path == "/workflow/w9/approve/req-7"


def test_approval_line_by_workflow_name():
    res = resolve_line(CFG, [BUILD, APPROVE], "approve - Wait for approve")
    assert isinstance(res.target, ApprovalTarget)
    assert "a1" in res.target.path
    assert res.target.workflow_id == "w2"


def test_first_workflow_with_match_wins():
    first = _wf("wA", "one", [JobRecord(name="lint", status="failed", job_number=1)], number=5)
    second = _wf("wB", "two", [JobRecord(name="lint", status="success", job_number=2)], number=5)
    res = resolve_line(CFG, [first, second], "2 - lint")
    # Matching is by name only; the job number in the text is not consulted.
    assert res.workflow.workflow_id == "wA"
    assert res.target.url.endswith("/workflows/wA/jobs/1")


def test_duplicate_job_names_in_one_workflow_take_first():
    wf = _wf("w1", "matrix", [JobRecord("test", "failed", 11), JobRecord("test", "success", 12)])
    assert resolve_line(CFG, [wf], "12 - test").target.url.endswith("/jobs/11")


def test_job_without_ids_yields_workflow_level_url():
    wf = _wf("w3", "build", [JobRecord(name="queued-job", status="queued")], number=60)
    res = resolve_line(CFG, [wf], "- - queued-job")
    assert res.target == BrowseTarget(url="https://app.circleci.com/pipelines/gh/acme/widgets/60/workflows/w3")


@pytest.mark.parametrize(
    "line",
    [
        "7 - no-such-job",
        "nope - Wait for approve",
        "build (success)",
        "",
    ],
)
def test_unmatched_lines_raise_build_not_found(line):
    with pytest.raises(BuildNotFound):
        resolve_line(CFG, [BUILD, APPROVE], line)


def test_approval_line_without_pending_gate_is_not_found():
    """Workflow name matches but it has no approval request -> BuildNotFound."""
    with pytest.raises(BuildNotFound):
        resolve_line(CFG, [BUILD], "build - Wait for approve")


def test_empty_snapshot_raises_build_not_found():
    with pytest.raises(BuildNotFound):
        resolve_line(CFG, [], "42 - build-x")


def test_browse_url_uses_configured_hosts_and_vcs():
    cfg = CircleCIConfig(token="t", organization="org", repo_name="r", web_host="https://ci.internal/", vcs="bb")
    assert resolve_line(cfg, [BUILD], "42 - build-x").target.url == "https://ci.internal/pipelines/bb/org/r/57/workflows/w1/jobs/42"


# ============================================================================
# resolve_key (stable identifiers)
# ============================================================================

def test_key_resolution_matches_text_resolution():
    for line, key in [
        ("42 - build-x", LineKey("w1", "build-x")),
        ("approve - Wait for approve", LineKey("w2", "deploy-approval")),
    ]:
        assert resolve_key(CFG, [BUILD, APPROVE], key).target == resolve_line(CFG, [BUILD, APPROVE], line).target


def test_key_without_job_targets_workflow():
    res = resolve_key(CFG, [BUILD, APPROVE], LineKey("w2"))
    assert res.job is None
    assert res.target == BrowseTarget(url="https://app.circleci.com/pipelines/gh/acme/widgets/57/workflows/w2")


def test_key_handles_names_the_text_path_cannot():
    """A job name containing 'approve' or ' - ' is unambiguous by key."""
    wf = _wf("w5", "release", [JobRecord(name="approve - prod", status="success", job_number=77)])
    assert resolve_key(CFG, [wf], LineKey("w5", "approve - prod")).target.url.endswith("/w5/jobs/77")
    with pytest.raises(BuildNotFound):
        resolve_line(CFG, [wf], "77 - approve - prod")


@pytest.mark.parametrize("key", [LineKey("missing"), LineKey("w1", "missing")])
def test_unknown_key_raises_build_not_found(key):
    with pytest.raises(BuildNotFound):
        resolve_key(CFG, [BUILD, APPROVE], key)
