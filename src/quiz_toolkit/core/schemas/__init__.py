"""
Schemas Package

JSON schema definitions and validation utilities.
"""

from .validator import (
    EmptyDataError,
    HashMismatchError,
    InvalidQuestionStructureError,
    InvalidTypeError,
    JsonSyntaxError,
    MissingFieldError,
    StructureMismatchError,
    ValidationError,
    WrongSubjectError,
    validate_bundle,
    validate_schema,
)

__all__ = [
    "EmptyDataError",
    "HashMismatchError",
    "InvalidQuestionStructureError",
    "InvalidTypeError",
    "JsonSyntaxError",
    "MissingFieldError",
    "StructureMismatchError",
    "ValidationError",
    "WrongSubjectError",
    "validate_bundle",
    "validate_schema",
]
