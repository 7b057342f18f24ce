from __future__ import annotations

import logging

from sqlalchemy import select

from .db import SessionLocal
from .logging_setup import configure_logging
from .models import Brand, BrandUser, Role, User
from .services.audit import write_system_activity_log
from .services.security import hash_password
from .settings import settings

logger = logging.getLogger(__name__)

SEED_PASSWORD = "agencydesk123"
SEED_DOMAIN = "agencydesk.app"
DEMO_BRAND_NAME = "Demo Coffee Co."


def _seed_email(role: Role) -> str:
    return f"{role.value.lower().replace('_', '')}@{SEED_DOMAIN}"


def main() -> None:
    configure_logging(settings.log_level)
    with SessionLocal() as db:
        users: dict[Role, User] = {}
        for role in Role:
            email = _seed_email(role)
            user = db.scalar(select(User).where(User.email == email))
            if user is None:
                user = User(
                    email=email,
                    password_hash=hash_password(SEED_PASSWORD),
                    first_name=role.value.replace("_", " ").title(),
                    last_name="Demo",
                    role=role,
                    is_active=True,
                )
                db.add(user)
                db.flush()
                write_system_activity_log(db=db, action="user.seeded", entity="user", entity_id=user.id)
            users[role] = user

        brand = db.scalar(select(Brand).where(Brand.name == DEMO_BRAND_NAME))
        if brand is None:
            brand = Brand(name=DEMO_BRAND_NAME, description="Seeded demo brand", is_active=True)
            db.add(brand)
            db.flush()
            write_system_activity_log(db=db, action="brand.seeded", entity="brand", entity_id=brand.id)

        for role, user in users.items():
            if role in (Role.SUPER_ADMIN, Role.ADMIN):
                continue
            membership = db.scalar(
                select(BrandUser).where(BrandUser.brand_id == brand.id, BrandUser.user_id == user.id)
            )
            if membership is None:
                db.add(BrandUser(brand_id=brand.id, user_id=user.id))

        db.commit()
    logger.info("seed complete: %d users, brand=%s", len(users), DEMO_BRAND_NAME)
    print(f"Seed complete: users={len(users)} brand={DEMO_BRAND_NAME} password={SEED_PASSWORD}")


if __name__ == "__main__":
    main()
