"""
Application constants for the moderation service.

Centralizes decision thresholds and limits used across the pipeline.
Thresholds are fixed on purpose: they are not runtime configuration.
"""

# Evidence gathering
EVIDENCE_MESSAGE_LIMIT = 5  # Most recent messages by the reported user

# Decision policy
BLOCK_CONFIDENCE_THRESHOLD = 0.70  # "block" verdict
WARN_BLOCK_CONFIDENCE_THRESHOLD = 0.75  # "warn" verdict escalates to block

# Classifier fallback when the model reply cannot be decoded
FALLBACK_CONFIDENCE = 0.5
FALLBACK_REASON = "could not analyze"
UNSPECIFIED_REASON = "not specified"

# Content length limits
REPORT_REASON_MAX_LENGTH = 2000

# Response messages
NO_EVIDENCE_MESSAGE = "no messages to moderate"
ALREADY_BLOCKED_MESSAGE = "user is already blocked"
SELF_REPORT_MESSAGE = "cannot report yourself"

# CORS (headers sent by the Supabase JS client)
CORS_ALLOWED_HEADERS = ["authorization", "x-client-info", "apikey", "content-type"]

# Enforcement reconciliation
ENFORCEMENT_MAX_RETRIES = 5
ENFORCEMENT_RETRY_DELAY_SECONDS = 30
RECONCILE_INTERVAL_SECONDS = 600.0  # Every 10 minutes
RECONCILE_BATCH_SIZE = 100
RECONCILE_PAGE_SIZE = 500  # auto_blocked reports scanned per query

# Rate limiting
MODERATE_RATE_LIMIT = "20/minute"
