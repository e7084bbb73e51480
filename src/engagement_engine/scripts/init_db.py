"""Create the engine tables and seed default pricing for every city."""
from __future__ import annotations

import logging

from engagement_engine.db.session import SessionLocal, create_tables
from engagement_engine.services.pricing import PricingService

logger = logging.getLogger(__name__)

SYSTEM_ACTOR = "system"


def init_db(seed_pricing: bool = True) -> int:
    """Create tables and, optionally, default pricing.

    Returns:
        Number of pricing rules created.
    """
    create_tables()
    if not seed_pricing:
        return 0
    with SessionLocal() as db:
        created = PricingService().initialize_defaults(db, actor_id=SYSTEM_ACTOR)
    return len(created)


if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO)
    count = init_db()
    logger.info("Database initialized; %d pricing rules created.", count)
