"""Navigation security: URL validation and audit logging."""

from .url_validator import (
    AUDIT_LOGGER_NAME,
    ALLOWED_SCHEMES,
    BLOCKED_PATTERNS,
    DANGEROUS_EXTENSIONS,
    MAX_URL_LENGTH,
    ValidationOutcome,
    validate,
    validate_list,
    sanitize_url,
    is_local_url,
    mask_for_audit,
    generate_audit_entry,
    log_audit,
)

__all__ = [
    "AUDIT_LOGGER_NAME",
    "ALLOWED_SCHEMES",
    "BLOCKED_PATTERNS",
    "DANGEROUS_EXTENSIONS",
    "MAX_URL_LENGTH",
    "ValidationOutcome",
    "validate",
    "validate_list",
    "sanitize_url",
    "is_local_url",
    "mask_for_audit",
    "generate_audit_entry",
    "log_audit",
]
