"""
Prometheus metrics for monitoring
"""
from prometheus_client import Counter, Histogram, generate_latest, CONTENT_TYPE_LATEST

# ==================== Bid Metrics ====================

bids_placed_total = Counter(
    'bids_placed_total',
    'Total bids accepted into the ledger',
    ['bid_type']  # Manual, Automatic
)

bids_rejected_total = Counter(
    'bids_rejected_total',
    'Total bids rejected before reaching the ledger',
    ['reason']
)

bid_placement_duration_seconds = Histogram(
    'bid_placement_duration_seconds',
    'Time to place a bid end-to-end',
    buckets=[0.005, 0.01, 0.05, 0.1, 0.5, 1.0, 2.0, 5.0]
)

bid_conflict_retries_total = Counter(
    'bid_conflict_retries_total',
    'Bid placements retried after losing a race on auction state'
)

lock_acquire_retries_total = Counter(
    'lock_acquire_retries_total',
    'Retries spent waiting for a per-auction lock'
)

bids_cancelled_total = Counter(
    'bids_cancelled_total',
    'Total bids cancelled by their owner'
)

# ==================== Settlement Metrics ====================

settlement_transitions_total = Counter(
    'settlement_transitions_total',
    'Offer status transitions',
    ['to_status']  # Offered, Accepted, Rejected
)

# ==================== Notification Metrics ====================

notifications_enqueued_total = Counter(
    'notifications_enqueued_total',
    'Notification jobs pushed onto the queue'
)

notifications_persisted_total = Counter(
    'notifications_persisted_total',
    'Notification rows written by the worker'
)

notification_failures_total = Counter(
    'notification_failures_total',
    'Notification fan-out failures (enqueue or persist)',
    ['stage']  # enqueue, persist
)

# ==================== Expiry Metrics ====================

expiry_jobs_scheduled_total = Counter(
    'expiry_jobs_scheduled_total',
    'Auction-expiry jobs scheduled'
)

expiry_jobs_processed_total = Counter(
    'expiry_jobs_processed_total',
    'Auction-expiry jobs consumed',
    ['outcome']  # notified, missing
)


def get_metrics():
    """Get current metrics in Prometheus format"""
    return generate_latest(), CONTENT_TYPE_LATEST
