"""
Interaction tracking.

Validates a client batch, appends it to ``user_interactions`` and bumps
the ``product_scores`` counters once per (product, interaction type).
"""

from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Sequence, Tuple

from config.constants import DEFAULT_TRACKING_CONFIG, TrackingConfig
from core.logging import LoggerMixin
from recs.models import InteractionEvent
from recs.stores import InteractionStore, StoreError


class TrackingValidationError(ValueError):
    """The batch as a whole is unacceptable (e.g. too large)."""
    pass


class InteractionTracker(LoggerMixin):

    def __init__(self, store: InteractionStore, config: TrackingConfig = DEFAULT_TRACKING_CONFIG):
        self.store = store
        self.config = config

    def is_valid(self, event: InteractionEvent) -> bool:
        return bool(event.session_id) and event.interaction_type in self.config.VALID_INTERACTION_TYPES

    def build_rows(
        self,
        events: Sequence[InteractionEvent],
        authenticated_user_id: Optional[str] = None,
    ) -> Tuple[List[Dict[str, Any]], List[Tuple[str, str]]]:
        """
        Rows to insert plus the distinct ``(product_id, interaction_type)``
        score updates. Invalid events are skipped.
        """
        rows = []
        score_updates: Dict[Tuple[str, str], None] = {}

        for event in events:
            if not self.is_valid(event):
                continue

            rows.append({
                # the verified user wins over whatever the client claims
                "user_id": authenticated_user_id or event.user_id or None,
                "session_id": event.session_id,
                "product_id": event.product_id or None,
                "interaction_type": event.interaction_type,
                "dwell_time_seconds": event.dwell_time_seconds or 0,
                "metadata": event.metadata or {},
                "created_at": event.timestamp or datetime.now(timezone.utc),
            })

            if event.product_id and event.interaction_type not in self.config.UNSCORED_TYPES:
                score_updates[(event.product_id, event.interaction_type)] = None

        return rows, list(score_updates)

    def track(
        self,
        events: Sequence[InteractionEvent],
        authenticated_user_id: Optional[str] = None,
    ) -> int:
        """
        Record a batch; returns the number of valid interactions stored.

        Raises:
            TrackingValidationError: If the batch exceeds MAX_BATCH_SIZE.
            StoreError: If the insert fails. Score counter failures are
                logged and skipped.
        """
        if len(events) > self.config.MAX_BATCH_SIZE:
            raise TrackingValidationError(
                f"Batch too large: maximum {self.config.MAX_BATCH_SIZE} interactions per request"
            )

        rows, score_updates = self.build_rows(events, authenticated_user_id)
        if not rows:
            return 0

        self.store.record_interactions(rows)

        for product_id, interaction_type in score_updates:
            try:
                self.store.increment_product_score(product_id, interaction_type)
            except StoreError as e:
                self.logger.warning(
                    "Failed to update product score",
                    product_id=product_id,
                    interaction_type=interaction_type,
                    error=str(e),
                )

        self.logger.info(
            "Interactions tracked",
            processed=len(rows),
            skipped=len(events) - len(rows),
            score_updates=len(score_updates),
            authenticated=authenticated_user_id is not None,
        )
        return len(rows)
