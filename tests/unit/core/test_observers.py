"""
Unit tests for analysis observers and cancellation tokens.
"""

import logging

import pytest

from viz_advisor.core.cancellation import CancellationToken
from viz_advisor.core.exceptions import AnalysisCancelledError
from viz_advisor.core.observers import AnalysisObserver, LoggingObserver, ProgressCallbackObserver


@pytest.mark.unit
class TestObservers:
    """Observer implementations."""

    def test_observer_is_abstract(self):
        """AnalysisObserver cannot be instantiated directly."""
        with pytest.raises(TypeError):
            AnalysisObserver()

    def test_progress_callback_observer(self):
        """Only progress events reach the callback."""
        calls = []
        observer = ProgressCallbackObserver(lambda percent, stage: calls.append((percent, stage)))

        observer.on_analysis_start(10, 2)
        observer.on_progress(30, "patterns")
        observer.on_analysis_complete(None)

        assert calls == [(30, "patterns")]

    def test_logging_observer(self, caplog):
        """Logging observer writes progress at its level."""
        observer = LoggingObserver(level=logging.INFO)

        with caplog.at_level(logging.INFO, logger="viz_advisor.core.observers"):
            observer.on_analysis_start(1_500, 3)
            observer.on_progress(10, "profiling")
            observer.on_step_failed("clusters", RuntimeError("boom"))

        assert "1,500 rows" in caplog.text
        assert "profiling" in caplog.text
        assert "clusters" in caplog.text


@pytest.mark.unit
class TestCancellationToken:
    """Cooperative cancellation."""

    def test_initially_not_cancelled(self):
        """A fresh token does not raise."""
        token = CancellationToken()

        assert token.cancelled is False
        token.raise_if_cancelled("profiling")

    def test_cancel_raises(self):
        """A cancelled token raises with the stage name."""
        token = CancellationToken()
        token.cancel()

        with pytest.raises(AnalysisCancelledError) as exc_info:
            token.raise_if_cancelled("profiling")
        assert exc_info.value.stage == "profiling"

    def test_parent_cancellation_propagates(self):
        """Cancelling the parent cancels the child, not the reverse."""
        parent = CancellationToken()
        child = CancellationToken(parent=parent)

        child.cancel()
        assert parent.cancelled is False

        other_child = CancellationToken(parent=parent)
        parent.cancel()
        assert other_child.cancelled is True
