"""
Validation Error Types
Structured errors for step lists and workflow graphs
"""
from typing import Optional, List, Dict, Any
from dataclasses import dataclass
from enum import Enum

from flowcanvas.core.constants import ValidationSeverity, ErrorCode


# ============================================================================
# ERROR TYPES
# ============================================================================

class ValidationErrorType(str, Enum):
    """Types of validation errors"""
    SCHEMA_ERROR = "schema_error"
    REFERENCE_ERROR = "reference_error"
    TOPOLOGY_ERROR = "topology_error"
    EDIT_ERROR = "edit_error"
    COMPLETENESS_ERROR = "completeness_error"


# ============================================================================
# STRUCTURED VALIDATION ERROR
# ============================================================================

@dataclass
class ValidationError:
    """
    Structured validation error

    A data structure that can be collected and reported.
    Blocking errors are also raised wrapped in a GraphModelException.
    """
    severity: ValidationSeverity
    error_type: ValidationErrorType
    location: str
    message: str
    code: str
    suggestion: Optional[str] = None
    details: Optional[Dict[str, Any]] = None

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for API response"""
        return {
            "severity": self.severity.value,
            "error_type": self.error_type.value,
            "location": self.location,
            "message": self.message,
            "code": self.code,
            "suggestion": self.suggestion,
            "details": self.details
        }

    def is_blocking(self) -> bool:
        """Check if this error blocks save/execute"""
        return self.severity == ValidationSeverity.ERROR

    def is_warning(self) -> bool:
        """Check if this is a warning"""
        return self.severity == ValidationSeverity.WARNING


# ============================================================================
# VALIDATION RESULT
# ============================================================================

@dataclass
class ValidationResult:
    """
    Complete validation result

    Contains all errors, warnings, and info messages from validation
    """
    valid: bool
    errors: List[ValidationError]
    warnings: List[ValidationError]
    info: List[ValidationError]

    @property
    def has_errors(self) -> bool:
        return len(self.errors) > 0

    @property
    def has_warnings(self) -> bool:
        return len(self.warnings) > 0

    @property
    def error_count(self) -> int:
        return len(self.errors)

    @property
    def warning_count(self) -> int:
        return len(self.warnings)

    def codes(self) -> List[str]:
        """Codes of blocking errors, in report order"""
        return [e.code for e in self.errors]

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for API response"""
        return {
            "valid": self.valid,
            "error_count": self.error_count,
            "warning_count": self.warning_count,
            "errors": [e.to_dict() for e in self.errors],
            "warnings": [w.to_dict() for w in self.warnings],
            "info": [i.to_dict() for i in self.info]
        }

    @classmethod
    def create_valid(cls) -> "ValidationResult":
        """Create a valid result with no errors"""
        return cls(valid=True, errors=[], warnings=[], info=[])

    @classmethod
    def from_errors(cls, errors: List[ValidationError]) -> "ValidationResult":
        """Split collected errors by severity"""
        warnings = [e for e in errors if e.is_warning()]
        blocking_errors = [e for e in errors if e.is_blocking()]
        info_messages = [e for e in errors if e.severity == ValidationSeverity.INFO]

        return cls(
            valid=len(blocking_errors) == 0,
            errors=blocking_errors,
            warnings=warnings,
            info=info_messages
        )


# ============================================================================
# EXCEPTION TYPES
# ============================================================================

class GraphModelException(Exception):
    """
    Base exception for workflow graph model failures

    Carries the structured ValidationError that caused it.
    """

    def __init__(self, error: ValidationError):
        super().__init__(error.message)
        self.error = error

    def to_dict(self) -> Dict[str, Any]:
        return {"error": type(self).__name__, **self.error.to_dict()}


class DuplicateStepId(GraphModelException):
    """Two steps share an ID"""
    pass


class ReservedStepId(GraphModelException):
    """A step uses a sentinel node ID"""
    pass


class DanglingStepReference(GraphModelException):
    """next_step/then_step/else_step points to a step that does not exist"""
    pass


class GraphEditError(GraphModelException):
    """An edit operation would break the graph shape"""
    pass


class GraphSerializationError(GraphModelException):
    """A graph node cannot be turned back into a step"""
    pass


# ============================================================================
# ERROR BUILDERS (convenience functions)
# ============================================================================

def schema_error(
    location: str,
    message: str,
    code: str = ErrorCode.INVALID_STEP,
    suggestion: Optional[str] = None,
    details: Optional[Dict[str, Any]] = None
) -> ValidationError:
    """Build a schema validation error"""
    return ValidationError(
        severity=ValidationSeverity.ERROR,
        error_type=ValidationErrorType.SCHEMA_ERROR,
        location=location,
        message=message,
        code=code,
        suggestion=suggestion,
        details=details
    )


def reference_error(
    location: str,
    message: str,
    missing_ref: str,
    suggestion: Optional[str] = None
) -> ValidationError:
    """Build a dangling reference error"""
    return ValidationError(
        severity=ValidationSeverity.ERROR,
        error_type=ValidationErrorType.REFERENCE_ERROR,
        location=location,
        message=message,
        code=ErrorCode.DANGLING_STEP_REFERENCE,
        suggestion=suggestion,
        details={"missing_reference": missing_ref}
    )


def topology_error(
    location: str,
    message: str,
    code: str,
    suggestion: Optional[str] = None,
    details: Optional[Dict[str, Any]] = None
) -> ValidationError:
    """Build a graph shape error"""
    return ValidationError(
        severity=ValidationSeverity.ERROR,
        error_type=ValidationErrorType.TOPOLOGY_ERROR,
        location=location,
        message=message,
        code=code,
        suggestion=suggestion,
        details=details
    )


def edit_error(location: str, message: str, suggestion: Optional[str] = None) -> ValidationError:
    """Build an edit rejection error"""
    return ValidationError(
        severity=ValidationSeverity.ERROR,
        error_type=ValidationErrorType.EDIT_ERROR,
        location=location,
        message=message,
        code=ErrorCode.INVALID_EDIT,
        suggestion=suggestion
    )


def completeness_warning(location: str, message: str, suggestion: Optional[str] = None) -> ValidationError:
    """Build an incomplete-step warning"""
    return ValidationError(
        severity=ValidationSeverity.WARNING,
        error_type=ValidationErrorType.COMPLETENESS_ERROR,
        location=location,
        message=message,
        code=ErrorCode.INCOMPLETE_STEP,
        suggestion=suggestion
    )


def ignored_field_warning(location: str, message: str, suggestion: Optional[str] = None) -> ValidationError:
    """Build a warning for a field the editor does not use"""
    return ValidationError(
        severity=ValidationSeverity.WARNING,
        error_type=ValidationErrorType.SCHEMA_ERROR,
        location=location,
        message=message,
        code=ErrorCode.IGNORED_FIELD,
        suggestion=suggestion
    )


# Exception class raised for each blocking error code
EXCEPTION_FOR_CODE = {
    ErrorCode.DUPLICATE_STEP_ID: DuplicateStepId,
    ErrorCode.RESERVED_STEP_ID: ReservedStepId,
    ErrorCode.DANGLING_STEP_REFERENCE: DanglingStepReference,
    ErrorCode.INVALID_EDIT: GraphEditError,
    ErrorCode.SERIALIZATION_ERROR: GraphSerializationError,
}


def raise_for_error(error: ValidationError) -> None:
    """Raise the exception type matching a blocking error"""
    exc_type = EXCEPTION_FOR_CODE.get(error.code, GraphModelException)
    raise exc_type(error)
