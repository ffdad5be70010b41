"""
viz-advisor Exception Hierarchy.

This module defines the exception hierarchy for the analysis engine, giving
every failure a severity so callers and the orchestrator can decide whether
to abort, downgrade, or simply log.

Exception Severity Levels:
    - FATAL: Stop the analysis immediately and surface the error
    - CRITICAL: Stop the current analysis run (e.g. cancellation)
    - RECOVERABLE: Log error, treat the sub-analysis as "no pattern found"
    - WARNING: Log warning, processing continues unchanged
"""

from typing import Optional, Dict, Any
from enum import Enum


class ErrorSeverity(Enum):
    """
    Classify error severity for handling decisions.

    Attributes:
        FATAL: Unrecoverable error, abort the pipeline
        CRITICAL: Run-level error, abandon this analysis run
        RECOVERABLE: Step-level error, continue with the other analyses
        WARNING: Non-critical issue, log and continue
    """
    FATAL = "fatal"
    CRITICAL = "critical"
    RECOVERABLE = "recoverable"
    WARNING = "warning"


class VizAdvisorException(Exception):
    """
    Base exception for all viz-advisor errors with enhanced context.

    Attributes:
        message (str): Human-readable error message
        severity (ErrorSeverity): Error severity level
        details (Dict[str, Any]): Additional context (column, step name, etc.)
        original_exception (Optional[Exception]): Original exception if wrapping

    Example:
        >>> try:
        ...     run_step()
        ... except Exception as e:
        ...     raise VizAdvisorException(
        ...         "Correlation pass failed",
        ...         severity=ErrorSeverity.RECOVERABLE,
        ...         details={'step': 'correlations'},
        ...         original_exception=e
        ...     )
    """

    def __init__(
        self,
        message: str,
        severity: ErrorSeverity = ErrorSeverity.RECOVERABLE,
        details: Optional[Dict[str, Any]] = None,
        original_exception: Optional[Exception] = None
    ):
        super().__init__(message)
        self.message = message
        self.severity = severity
        self.details = details or {}
        self.original_exception = original_exception

    def to_dict(self) -> Dict[str, Any]:
        """
        Serialize exception to dictionary for logging/reporting.

        Returns:
            Dictionary containing exception details suitable for JSON serialization
        """
        return {
            'type': self.__class__.__name__,
            'message': self.message,
            'severity': self.severity.value,
            'details': self.details,
            'original_error': str(self.original_exception) if self.original_exception else None
        }


# ============================================================================
# Configuration Errors (Fatal)
# ============================================================================

class ConfigError(VizAdvisorException):
    """
    Configuration errors (fatal - the engine cannot be built).

    Raised when:
    - Configuration file not found
    - Invalid YAML syntax
    - Unknown setting names or out-of-range values

    Attributes:
        field (Optional[str]): Specific setting that caused the error
    """

    def __init__(self, message: str, field: Optional[str] = None):
        details = {'field': field} if field else {}
        super().__init__(message, severity=ErrorSeverity.FATAL, details=details)
        self.field = field


class YAMLSizeError(ConfigError):
    """YAML file exceeds the size or structure limits."""

    def __init__(self, message: str):
        super().__init__(message)


class RuleCatalogError(VizAdvisorException):
    """
    Invalid suggestion rule catalog (fatal - raised at catalog load time).

    Example:
        >>> raise RuleCatalogError(
        ...     "Base score out of range",
        ...     rule="categorical/pie"
        ... )
    """

    def __init__(self, message: str, rule: Optional[str] = None):
        details = {'rule': rule} if rule else {}
        super().__init__(message, severity=ErrorSeverity.FATAL, details=details)
        self.rule = rule


# ============================================================================
# Input Errors (Fatal)
# ============================================================================

class InputError(VizAdvisorException):
    """
    Empty or malformed dataset handed to the engine.

    Input errors abort the pipeline and are surfaced to the caller.
    """

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(message, severity=ErrorSeverity.FATAL, details=details)


class EmptyDatasetError(InputError):
    """Dataset contains no records."""

    def __init__(self, message: str = "Dataset contains no records"):
        super().__init__(message, details={'row_count': 0})


# ============================================================================
# Analysis Errors
# ============================================================================

class AnalysisStepFailure(VizAdvisorException):
    """
    A single pattern-detection sub-analysis failed (recoverable).

    The pattern detector catches these per sub-analysis, logs them and
    contributes an empty result, so the rest of the pipeline proceeds.

    Attributes:
        step (str): Name of the failed sub-analysis
    """

    def __init__(
        self,
        message: str,
        step: str,
        original_exception: Optional[Exception] = None
    ):
        super().__init__(
            message,
            severity=ErrorSeverity.RECOVERABLE,
            details={'step': step},
            original_exception=original_exception
        )
        self.step = step


class AnalysisCancelledError(VizAdvisorException):
    """Analysis run abandoned because its cancellation token was set."""

    def __init__(self, stage: Optional[str] = None):
        message = "Analysis cancelled"
        if stage:
            message += f" before stage '{stage}'"
        super().__init__(
            message,
            severity=ErrorSeverity.CRITICAL,
            details={'stage': stage} if stage else {}
        )
        self.stage = stage


# ============================================================================
# Resource Warnings
# ============================================================================

class MemoryPressure(VizAdvisorException):
    """
    Estimated dataset size exceeds the memory guard threshold.

    Never surfaced to callers: the orchestrator recovers by sampling.

    Attributes:
        estimated_bytes (int): Estimated in-memory size of the dataset
        available_bytes (int): Memory available when the check ran
        recommended_rows (int): Row count the dataset should be sampled to
    """

    def __init__(self, estimated_bytes: int, available_bytes: int, recommended_rows: int):
        super().__init__(
            f"Estimated dataset size {estimated_bytes:,} bytes exceeds memory budget "
            f"(available: {available_bytes:,} bytes)",
            severity=ErrorSeverity.WARNING,
            details={
                'estimated_bytes': estimated_bytes,
                'available_bytes': available_bytes,
                'recommended_rows': recommended_rows,
            }
        )
        self.estimated_bytes = estimated_bytes
        self.available_bytes = available_bytes
        self.recommended_rows = recommended_rows


class PreferencePersistenceError(VizAdvisorException):
    """
    Injected preference persistence callback failed (non-fatal).

    Preferences stay valid in memory for the session.
    """

    def __init__(self, message: str, original_exception: Optional[Exception] = None):
        super().__init__(
            message,
            severity=ErrorSeverity.WARNING,
            original_exception=original_exception
        )
