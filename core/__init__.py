import time

# Reference point for the uptime reported by /api/health.
PROCESS_STARTED_AT = time.monotonic()
