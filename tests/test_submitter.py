"""Tests for submission and state polling."""

import itertools
import logging

import pytest

from fakes import FakeResourceManager, make_spec
from launcher.submitter import POLL_INTERVAL_SECONDS, log_diagnostics, submit_and_wait_for_running
from utils.errors import PollTimeoutError, ResourceManagerError, SubmissionError
from utils.models import ApplicationState

ACCEPTED = ApplicationState.ACCEPTED
SUBMITTED = ApplicationState.SUBMITTED
RUNNING = ApplicationState.RUNNING


class TestSubmitAndWait:
    def test_polls_until_running(self):
        rm = FakeResourceManager([ACCEPTED, ACCEPTED, RUNNING])
        sleeps = []

        handle, state = submit_and_wait_for_running(rm, make_spec(), sleep=sleeps.append)

        assert (handle, state) == ("application_1700000000000_0001", RUNNING)
        assert rm.state_queries == 3
        assert sleeps == [POLL_INTERVAL_SECONDS, POLL_INTERVAL_SECONDS]

    def test_already_running_needs_one_query(self):
        rm = FakeResourceManager([RUNNING])
        sleeps = []
        submit_and_wait_for_running(rm, make_spec(), sleep=sleeps.append)
        assert rm.state_queries == 1
        assert sleeps == []

    @pytest.mark.parametrize("final", [ApplicationState.KILLED, ApplicationState.FAILED])
    def test_failure_states_are_returned(self, final):
        rm = FakeResourceManager([SUBMITTED, final, RUNNING])
        handle, state = submit_and_wait_for_running(rm, make_spec(), sleep=lambda s: None)
        assert state == final
        assert rm.state_queries == 2

    def test_finished_keeps_polling(self):
        # FINISHED is not a stop state for this workflow; the fake then reports FAILED
        rm = FakeResourceManager([ACCEPTED, ApplicationState.FINISHED, ApplicationState.FAILED])
        _, state = submit_and_wait_for_running(rm, make_spec(), sleep=lambda s: None)
        assert state == ApplicationState.FAILED
        assert rm.state_queries == 3

    def test_submits_the_spec(self):
        rm = FakeResourceManager([RUNNING])
        spec = make_spec(app_name="search-prod")
        submit_and_wait_for_running(rm, spec, sleep=lambda s: None)
        assert rm.submitted == [("application_1700000000000_0001", spec)]

    def test_rejection_is_submission_error(self):
        rm = FakeResourceManager([RUNNING], reject=True)
        with pytest.raises(SubmissionError) as exc_info:
            submit_and_wait_for_running(rm, make_spec(), sleep=lambda s: None)
        assert isinstance(exc_info.value.__cause__, ResourceManagerError)
        assert rm.state_queries == 0

    def test_deadline(self):
        rm = FakeResourceManager([ACCEPTED])
        clock = itertools.count(0, 10).__next__
        sleeps = []

        with pytest.raises(PollTimeoutError) as exc_info:
            submit_and_wait_for_running(rm, make_spec(), poll_timeout=25, sleep=sleeps.append, clock=clock)

        assert exc_info.value.last_state == ACCEPTED
        assert rm.state_queries == 3
        assert len(sleeps) == 2

    def test_no_deadline_by_default(self):
        rm = FakeResourceManager([ACCEPTED] * 50 + [RUNNING])
        _, state = submit_and_wait_for_running(rm, make_spec(), sleep=lambda s: None)
        assert state == RUNNING
        assert rm.state_queries == 51


class TestDiagnostics:
    def test_logs_cluster_nodes_and_queue(self, caplog):
        caplog.set_level(logging.INFO)
        log_diagnostics(FakeResourceManager([RUNNING]), "search")

        assert "numNodeManagers=3" in caplog.text
        assert "nodeId=nm1:45454" in caplog.text
        assert "queueName=search" in caplog.text

    def test_diagnostic_failures_are_logged(self, caplog):
        rm = FakeResourceManager([RUNNING], diagnostics_error=ResourceManagerError("503 Service Unavailable"))
        log_diagnostics(rm, "default")
        assert any(r.levelno == logging.WARNING for r in caplog.records)

    def test_malformed_reports_are_logged(self, caplog):
        rm = FakeResourceManager([RUNNING], diagnostics_error=AttributeError("'list' object has no attribute 'get'"))
        log_diagnostics(rm, "default")
        assert "Could not collect cluster diagnostics" in caplog.text
