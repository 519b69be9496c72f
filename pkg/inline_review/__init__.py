"""Diff line mapping and validation for AI inline review comments."""

from .batch import FileTally, ReviewBatch, ReviewBatchBuilder, ValidatedComment, review_marker
from .candidates import NO_ISSUES_SENTINEL, CommentCandidate, IgnoredLine, ParsedSuggestions, parse_candidates
from .config import ReviewSettings
from .diff_parser import ADDED, CONTEXT, DELETED, DiffLine, FileDiff, HunkHeaderError, parse_diff, parse_file_diff
from .line_index import LineAddressIndex, ValidationRejection, ValidationResult, validate_candidates
from .pipeline import FileReview, ReviewRun, review_changes, review_file
from .submitter import ReviewSubmitter, SubmissionFailure, SubmissionResult

__all__ = [
    "ADDED",
    "CONTEXT",
    "CommentCandidate",
    "DELETED",
    "DiffLine",
    "FileDiff",
    "FileReview",
    "FileTally",
    "HunkHeaderError",
    "IgnoredLine",
    "LineAddressIndex",
    "NO_ISSUES_SENTINEL",
    "ParsedSuggestions",
    "ReviewBatch",
    "ReviewBatchBuilder",
    "ReviewRun",
    "ReviewSettings",
    "ReviewSubmitter",
    "SubmissionFailure",
    "SubmissionResult",
    "ValidatedComment",
    "ValidationRejection",
    "ValidationResult",
    "parse_candidates",
    "parse_diff",
    "parse_file_diff",
    "review_changes",
    "review_file",
    "review_marker",
    "validate_candidates",
]
