"""
Observer Pattern for Analysis Event Notifications.

Decouples the analysis engine from progress reporting and presentation.
A UI layer typically registers a ``ProgressCallbackObserver`` wrapping its
``progress(percent, stage)`` hook; services register a ``LoggingObserver``.

Design Pattern: Observer (Behavioral)
Purpose: Keep the engine free of UI and output concerns
"""

import logging
from abc import ABC, abstractmethod
from typing import Any, Callable, List

logger = logging.getLogger(__name__)


class AnalysisObserver(ABC):
    """
    Abstract base class for analysis event observers.

    Methods are called synchronously from the thread running the pipeline,
    so observers should return quickly and must not assume they run on the
    caller's event loop.

    Example:
        >>> class PrintObserver(AnalysisObserver):
        ...     def on_progress(self, percent, stage):
        ...         print(f"{percent:3d}% {stage}")
        ...     # remaining hooks ...
        >>> engine = AnalysisEngine(observers=[PrintObserver()])
    """

    @abstractmethod
    def on_analysis_start(self, row_count: int, column_count: int) -> None:
        """
        Called when an analysis run starts.

        Args:
            row_count: Number of records being analyzed
            column_count: Number of fields per record
        """
        pass

    @abstractmethod
    def on_progress(self, percent: int, stage: str) -> None:
        """
        Called as the pipeline advances.

        Args:
            percent: Completion estimate, 0-100
            stage: Name of the stage about to run (or just finished)
        """
        pass

    @abstractmethod
    def on_step_failed(self, step: str, error: Exception) -> None:
        """
        Called when a pattern sub-analysis fails and is downgraded to empty.

        Args:
            step: Sub-analysis name
            error: The failure (usually an AnalysisStepFailure)
        """
        pass

    @abstractmethod
    def on_analysis_complete(self, result: Any) -> None:
        """
        Called with the finished AnalysisResult.

        Args:
            result: AnalysisResult of the run
        """
        pass

    @abstractmethod
    def on_suggestions_updated(self, suggestions: List[Any]) -> None:
        """
        Called after a preference update re-ranked the last suggestions.

        Args:
            suggestions: Newly ranked suggestions
        """
        pass


class ProgressCallbackObserver(AnalysisObserver):
    """Adapts a plain ``progress(percent, stage)`` callable to the observer API."""

    def __init__(self, callback: Callable[[int, str], None]):
        self.callback = callback

    def on_analysis_start(self, row_count: int, column_count: int) -> None:
        pass

    def on_progress(self, percent: int, stage: str) -> None:
        self.callback(percent, stage)

    def on_step_failed(self, step: str, error: Exception) -> None:
        pass

    def on_analysis_complete(self, result: Any) -> None:
        pass

    def on_suggestions_updated(self, suggestions: List[Any]) -> None:
        pass


class LoggingObserver(AnalysisObserver):
    """Observer that writes analysis events to the module logger."""

    def __init__(self, level: int = logging.INFO):
        self.level = level

    def on_analysis_start(self, row_count: int, column_count: int) -> None:
        logger.log(self.level, f"Analysis started: {row_count:,} rows, {column_count} columns")

    def on_progress(self, percent: int, stage: str) -> None:
        logger.log(self.level, f"[{percent:3d}%] {stage}")

    def on_step_failed(self, step: str, error: Exception) -> None:
        logger.warning(f"Analysis step '{step}' failed: {error}")

    def on_analysis_complete(self, result: Any) -> None:
        suggestions = getattr(result, 'suggestions', [])
        logger.log(self.level, f"Analysis complete: {len(suggestions)} suggestions")

    def on_suggestions_updated(self, suggestions: List[Any]) -> None:
        logger.log(self.level, f"Suggestions re-ranked: {len(suggestions)} suggestions")
