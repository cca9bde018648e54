#!/usr/bin/env python3
"""Seed script to fill the reward catalog.

Run this inside the container:
    docker exec ecoledger-core python /app/scripts/seed_catalog.py
"""

from ecoledger_core.domain.models import CatalogReward
from ecoledger_core.domain.services.catalog import RewardCatalogService
from ecoledger_core.infra.db import session_context

CATALOG = [
    {
        "name": "Reusable tote bag",
        "cost": 50,
        "description": "Organic cotton tote bag",
        "collection_info": "Pick up at the community centre front desk",
    },
    {
        "name": "Steel water bottle",
        "cost": 120,
        "description": "750 ml insulated bottle",
        "collection_info": "Pick up at the community centre front desk",
    },
    {
        "name": "Tree planted in your name",
        "cost": 300,
        "description": "One native tree planted by a partner nursery",
        "collection_info": "Certificate sent by email",
    },
    {
        "name": "Public transport day pass",
        "cost": 500,
        "description": "One day of unlimited city transit",
        "collection_info": "Code shown in your notifications",
    },
]


def main() -> None:
    with session_context() as db:
        service = RewardCatalogService(db)
        existing = {name for (name,) in db.query(CatalogReward.name).all()}

        created = 0
        for item in CATALOG:
            if item["name"] in existing:
                continue
            service.create_reward(**item)
            created += 1

    print(f"Seeded {created} rewards ({len(CATALOG) - created} already present)")


if __name__ == "__main__":
    main()
