from prometheus_client import Counter, Histogram

# Counter for readings API calls, labeled by operation and outcome
# operation: find, insert
# status: success, invalid, error
readings_requests_total = Counter(
    'readings_requests_total',
    'Total readings API requests',
    ['operation', 'status']
)

# Histogram for database round trips (seconds)
readings_storage_latency_seconds = Histogram(
    'readings_storage_latency_seconds',
    'Latency of readings collection operations in seconds',
    ['operation']
)

# Data volume stored
readings_inserted_total = Counter(
    'readings_inserted_total',
    'Total number of readings inserted'
)

auth_failures_total = Counter(
    'auth_failures_total',
    'Total requests rejected by basic authentication'
)

__all__ = [
    'readings_requests_total',
    'readings_storage_latency_seconds',
    'readings_inserted_total',
    'auth_failures_total',
]
