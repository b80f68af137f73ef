from __future__ import annotations

import asyncio
import logging
import os

from sqlalchemy import select

from hcc_portal.data.centre_loader import load_centre, sync_centre
from hcc_portal.db.database import get_session_factory
from hcc_portal.models import Caterer, MenuItem, Profile, ProfileRole
from hcc_portal.security.tokens import generate_api_key, hash_token

logging.basicConfig(level=logging.INFO)

CATERERS = [
    {"name": "Holy Cross Kitchen", "email": "kitchen@holycrosscentre.com.au", "color": "#2f855a"},
    {"name": "Harvest Table Catering", "email": "orders@harvesttable.example.com", "color": "#c05621"},
]

MENU_ITEMS = [
    {"label": "Continental breakfast", "dietary_tags": ["vegetarian"], "allergens": ["gluten", "dairy"]},
    {"label": "Scones with jam and cream", "dietary_tags": ["vegetarian"], "allergens": ["gluten", "dairy", "egg"]},
    {"label": "Roast vegetable lasagne", "dietary_tags": ["vegetarian"], "allergens": ["gluten", "dairy"]},
    {"label": "Seasonal fruit platter", "dietary_tags": ["vegan", "gluten_free"], "allergens": []},
    {"label": "Chicken and leek pie", "dietary_tags": [], "allergens": ["gluten", "dairy"]},
]


async def seed() -> None:
    async with get_session_factory()() as session:
        created = await sync_centre(session, load_centre())
        print(f"Centre: {created}")

        if not (await session.execute(select(Caterer).limit(1))).scalar_one_or_none():
            session.add_all(Caterer(**item) for item in CATERERS)
        if not (await session.execute(select(MenuItem).limit(1))).scalar_one_or_none():
            session.add_all(MenuItem(**item) for item in MENU_ITEMS)
        await session.commit()

        email = os.environ.get("ADMIN_EMAIL", "admin@holycrosscentre.com.au").strip().lower()
        existing = (await session.execute(select(Profile).where(Profile.email == email))).scalar_one_or_none()
        if existing:
            print(f"Admin profile {email} already exists; API key unchanged.")
            return

        api_key = generate_api_key()
        session.add(
            Profile(email=email, full_name="Centre Administrator", role=ProfileRole.ADMIN, api_key_hash=hash_token(api_key))
        )
        await session.commit()
        print(f"Admin profile created for {email}")
        print(f"API key (shown once): {api_key}")


if __name__ == "__main__":
    asyncio.run(seed())
