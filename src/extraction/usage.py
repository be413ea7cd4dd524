# src/extraction/usage.py

import logging
import os
import threading

logger = logging.getLogger(__name__)

COST_PER_1K_TOKENS = float(os.getenv("COST_PER_1K_TOKENS", "0.01"))


class UsageStats:
    """
    Process-lifetime counters for OpenAI usage.

    Upload handlers and worker threads share one instance, so every
    read-modify-write happens under the lock. Nothing is persisted; the
    counters start at zero on each process start.
    """

    def __init__(self, cost_per_1k_tokens: float = COST_PER_1K_TOKENS):
        self.cost_per_1k_tokens = cost_per_1k_tokens
        self._lock = threading.Lock()
        self._total_requests = 0
        self._total_tokens_used = 0

    def record_request(self) -> dict:
        with self._lock:
            self._total_requests += 1
            snapshot = self._snapshot_locked()
        self._log(snapshot)
        return snapshot

    def record_tokens(self, tokens: int) -> dict:
        with self._lock:
            self._total_tokens_used += tokens
            snapshot = self._snapshot_locked()
        logger.info("This request used %s tokens", tokens)
        self._log(snapshot)
        return snapshot

    def snapshot(self) -> dict:
        with self._lock:
            return self._snapshot_locked()

    def _snapshot_locked(self) -> dict:
        return {
            "totalRequests": self._total_requests,
            "totalTokensUsed": self._total_tokens_used,
            "estimatedCost": (self._total_tokens_used / 1000) * self.cost_per_1k_tokens,
        }

    @staticmethod
    def _log(snapshot: dict) -> None:
        logger.info(
            "Usage stats: total_requests=%s total_tokens_used=%s estimated_cost=$%.4f",
            snapshot["totalRequests"],
            snapshot["totalTokensUsed"],
            snapshot["estimatedCost"],
        )


# Shared by every entry point in this process.
usage_stats = UsageStats()
