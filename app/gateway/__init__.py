"""Skills admission gateway.

Serializes job-title lookups into a rate-limited completion API:
  - Completion Client (Mistral chat completions, error classification)
  - Response Normalizer (JSON array / comma list / fallback)
  - Interval Limiter (minimum spacing between attempts)
  - Admission Queue & Retry Scheduler (FIFO, single in-flight, backoff)
"""
