"""
Tests for session_idempotency_service.py -- duplicate notification guard.
"""

from services.session_idempotency_service import STATUS_COMPLETED, STATUS_IN_FLIGHT, SessionIdempotencyGuard


# ===================================================================
# Idempotency guard
# ===================================================================

class FakeClock:

  def __init__(self):
    self.now = 1000.0

  def __call__(self):
    return self.now


class TestSessionIdempotencyGuard:

  def test_first_claim_wins(self):
    guard = SessionIdempotencyGuard(ttl_seconds=60)
    assert guard.claim("cs_1") is True
    assert guard.claim("cs_1") is False
    assert guard.status_of("cs_1") == STATUS_IN_FLIGHT

  def test_completed_sessions_stay_claimed(self):
    guard = SessionIdempotencyGuard(ttl_seconds=60)
    guard.claim("cs_1")
    guard.mark_completed("cs_1")
    assert guard.status_of("cs_1") == STATUS_COMPLETED
    assert guard.claim("cs_1") is False

  def test_release_allows_retry(self):
    guard = SessionIdempotencyGuard(ttl_seconds=60)
    guard.claim("cs_1")
    guard.release("cs_1")
    assert guard.claim("cs_1") is True

  def test_markers_expire(self):
    clock = FakeClock()
    guard = SessionIdempotencyGuard(ttl_seconds=60, clock=clock)
    guard.claim("cs_1")
    guard.mark_completed("cs_1")
    clock.now += 61
    assert guard.status_of("cs_1") is None
    assert guard.claim("cs_1") is True

  def test_sessions_are_independent(self):
    guard = SessionIdempotencyGuard(ttl_seconds=60)
    assert guard.claim("cs_1") is True
    assert guard.claim("cs_2") is True
